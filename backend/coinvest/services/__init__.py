"""
CoinVest Ledger Services

This package contains the asset registry, price oracle, portfolio ledger and
the read-side aggregators built on top of it.
"""

__all__ = [
    'exceptions',
    'registry',
    'price_oracle',
    'ledger',
    'summary',
    'leaderboard',
    'journal',
]
