"""
Main entry point for running nirirules as a module.

Usage:
    python -m nirirules [options]
"""

from .daemon import main

if __name__ == "__main__":
    import sys

    sys.exit(main())
