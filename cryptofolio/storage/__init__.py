"""Holdings persistence adapters."""
from .json_store import JsonHoldingsStore

__all__ = ["JsonHoldingsStore"]
