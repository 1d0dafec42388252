#!/usr/bin/env python3
"""Standalone CLI runner for maintenance commands.

Usage:
    python maintenance_cli.py --help
    python maintenance_cli.py list-users
    python maintenance_cli.py setup-roles
    python maintenance_cli.py expire-promotions
"""

import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from maintenance.cli import cli

if __name__ == "__main__":
    cli()
