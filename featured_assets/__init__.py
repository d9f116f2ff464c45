"""
Featured Assets Ledger

A fungible-asset ledger with per-class supply accounting, deposit-backed
zombie accounts and issuer/admin/freezer permissions.
"""

__version__ = "1.0.0"
