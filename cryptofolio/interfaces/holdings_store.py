"""Holdings store protocol — durable coin id → quantity mapping."""
from typing import Mapping, Protocol


class HoldingsStore(Protocol):
    """Abstract interface for persisting the holdings ledger.

    Both methods raise ``StorageUnavailable`` when the backing store
    cannot be used.
    """

    async def load(self) -> dict[str, float]: ...

    async def save(self, holdings: Mapping[str, float]) -> None: ...
