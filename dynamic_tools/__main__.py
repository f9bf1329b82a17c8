"""Allow ``python -m dynamic_tools``."""

from dynamic_tools.cli import main

if __name__ == "__main__":
    main()
