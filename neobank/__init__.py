"""
NeoBank Core

Digital bank backend: users, accounts and a ledger engine that moves money
between them atomically, using Decimal arithmetic throughout.
"""

__version__ = "1.0.0"
