"""
Database models package.
"""

from tally.models.category import Category
from tally.models.transaction import Transaction

__all__ = [
    "Category",
    "Transaction",
]
