from .aggregator import AggregatedWatchlist, WatchlistAggregator, get_all_watchlist_items
from .executor import DeletionPolicy, execute_deletion
from .inventory import Inventory, fetch_inventory
from .results import (
    Aborted,
    CategoryResult,
    DeletedItem,
    DeletionResult,
    Proceed,
    TotalResult,
    create_empty_result,
    create_safety_triggered_result,
)
from .safety import SafetyCheck, perform_safety_check

__all__ = [
    "Aborted",
    "AggregatedWatchlist",
    "CategoryResult",
    "DeletedItem",
    "DeletionPolicy",
    "DeletionResult",
    "Inventory",
    "Proceed",
    "SafetyCheck",
    "TotalResult",
    "WatchlistAggregator",
    "create_empty_result",
    "create_safety_triggered_result",
    "execute_deletion",
    "fetch_inventory",
    "get_all_watchlist_items",
    "perform_safety_check",
]
