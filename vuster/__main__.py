"""
Main entry point for running the package as a module.

Usage:
    python -m vuster sync
    python -m vuster atlas
    python -m vuster list --pretty
"""

import sys
from .cli import main

if __name__ == '__main__':
    sys.exit(main())
