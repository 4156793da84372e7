"""
Entry point for running ChromiumKit CLI as a module.

Usage: python -m chromiumkit [command] [options]
"""

from chromiumkit.cli.parser import main

if __name__ == "__main__":
    main()
