"""
Entry point for running the scanner as a module.

Usage:
    python -m embedsql scan ./src
    python -m embedsql --help
"""

import sys
from embedsql.cli import main

if __name__ == "__main__":
    sys.exit(main())
