"""
Entry point for running ChromiumKit CLI as a module.

Usage: python -m chromiumkit.cli [command] [options]
"""

from .parser import main

if __name__ == "__main__":
    main()
