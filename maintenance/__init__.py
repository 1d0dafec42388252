"""Operator commands for fixing user roles and promotion state.

Usage:
    python maintenance_cli.py --help
    python maintenance_cli.py make-admin someone@example.com
    python maintenance_cli.py expire-promotions
"""
