"""
Allow running the harness as a module.

Usage:
    python -m shipcheck
"""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
