"""
keystream CLI entry point.

Usage:
    python -m keystream watch
    python -m keystream decode '\\x1b[A'
"""

from keystream.cli import main

if __name__ == "__main__":
    main()
