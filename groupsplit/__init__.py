"""
groupsplit - turn receipts into itemized bill splits and track group balances
"""

__version__ = "1.0.0"
