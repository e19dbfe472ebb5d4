"""
CoinVest: virtual asset trading ledger for the coin economy
"""

__version__ = "1.0.0"
