"""Data store module for collected balances."""

from bankfetch.store.base import DataStore, DataStoreError
from bankfetch.store.sqlite_store import SqliteBalanceStore

__all__ = ["DataStore", "DataStoreError", "SqliteBalanceStore"]
