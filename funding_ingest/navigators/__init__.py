"""
Navigators for announcement discovery.

Navigators handle the listing walk and raw detail capture:
- TableListingNavigator: paginated board table -> detail page (NTIS layout)
"""

from .base import ListingNavigator
from .table_listing import DEFAULT_SELECTORS, TableListingNavigator

__all__ = [
    "ListingNavigator",
    "TableListingNavigator",
    "DEFAULT_SELECTORS",
]
