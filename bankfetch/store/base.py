"""Data store contract for balance records."""

from abc import ABC, abstractmethod

from bankfetch.models import AccountBalance


class DataStoreError(Exception):
    """Raised when the data store is misused or its backend fails."""


class DataStore(ABC):
    """Durable sink for balances.

    Opened once per run and closed once; ``add_balance`` is only valid
    between the two.
    """

    @abstractmethod
    async def open(self) -> None: ...

    @abstractmethod
    async def add_balance(self, balance: AccountBalance) -> None: ...

    @abstractmethod
    async def close(self) -> None: ...
