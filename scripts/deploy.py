#!/usr/bin/env python3
"""
Deploy the contracts and link them.

Usage: python scripts/deploy.py --network blast-sepolia --plan tree-once
"""

import sys

from deployment.cli import main

if __name__ == "__main__":
    sys.exit(main())
