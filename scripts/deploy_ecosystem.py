#!/usr/bin/env python3
"""
Deploy the DMM ecosystem
See ecosystem/cli.py for flags; configuration is read from .env.
"""

import sys

from ecosystem.cli import main

if __name__ == "__main__":
    sys.exit(main())
