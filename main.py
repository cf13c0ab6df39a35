#!/usr/bin/env python3
"""
Main entry point for Experience Recall.

Equivalent to `python -m experience_recall`; see experience_recall/cli.py.
"""

import sys

from experience_recall.cli import main

if __name__ == "__main__":
    sys.exit(main())
