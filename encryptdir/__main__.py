"""
Main entry point for running encryptdir as a module.

Usage:
    python -m encryptdir <command> [options]
"""

from .cli import main
import sys

if __name__ == "__main__":
    sys.exit(main())
