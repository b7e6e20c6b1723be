"""
Entry point for running the elankit CLI as a module.

Usage: python -m elankit.cli [command] [options]
"""

from .parser import main

if __name__ == "__main__":
    main()
