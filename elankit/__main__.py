"""
Entry point for running the elankit CLI as a module.

Usage: python -m elankit [command] [options]
"""

from elankit.cli.parser import main

if __name__ == "__main__":
    main()
