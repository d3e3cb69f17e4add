"""
Entry point for running interpkit as a module.

Usage: python -m interpkit [command] [options]
"""

from interpkit.cli.parser import main

if __name__ == "__main__":
    main()
