"""Portfolio orchestration: owns the market snapshot, ledger and derived view."""
from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import replace
from typing import Callable

from ..config import ControllerConfig
from ..errors import (
    FetchFailure,
    FetchTimeout,
    InvalidStateError,
    StorageUnavailable,
)
from ..interfaces.holdings_store import HoldingsStore
from ..interfaces.market_data import MarketDataSource
from ..metrics import compute
from ..models import (
    AggregateStats,
    GlobalMarketData,
    HoldingsLedger,
    MarketSnapshot,
    PortfolioEntry,
)
from ..reconciler import delete_holding, reconcile, set_holding

logger = logging.getLogger(__name__)

Listener = Callable[["PortfolioController"], None]


class ControllerState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"


class PortfolioController:
    """Single owner of portfolio state.

    All mutation happens on the event loop that drives the controller.
    Market refreshes and ledger saves are asynchronous; reconciliation and
    metrics are recomputed synchronously whenever either input changes.
    """

    def __init__(
        self,
        source: MarketDataSource,
        store: HoldingsStore,
        config: ControllerConfig | None = None,
    ) -> None:
        self._source = source
        self._store = store
        self._config = config or ControllerConfig()

        self._state = ControllerState.UNINITIALIZED
        self._snapshot: MarketSnapshot | None = None
        self._ledger: HoldingsLedger | None = None
        self._view: tuple[PortfolioEntry, ...] = ()
        self._stats = AggregateStats()

        # Request sequencing: results older than the last applied are dropped.
        self._issued_seq = 0
        self._applied_seq = 0
        self._current_refresh: asyncio.Task | None = None
        self._inflight: set[asyncio.Task] = set()

        self._ledger_task: asyncio.Task | None = None

        self._save_lock = asyncio.Lock()
        self._pending_saves: set[asyncio.Task] = set()
        self._last_saved: HoldingsLedger | None = None

        self.is_stale = False
        self.last_error: FetchFailure | None = None
        self.persist_error: StorageUnavailable | None = None

        self._listeners: list[Listener] = []

    # ------------------------------------------------------------------
    # Read model
    # ------------------------------------------------------------------

    @property
    def state(self) -> ControllerState:
        return self._state

    def current_portfolio_view(self) -> tuple[PortfolioEntry, ...]:
        return self._view

    def current_stats(self) -> AggregateStats:
        return self._stats

    def current_snapshot(self) -> MarketSnapshot | None:
        return self._snapshot

    def current_ledger(self) -> HoldingsLedger:
        return self._ledger if self._ledger is not None else HoldingsLedger()

    def global_data(self) -> GlobalMarketData | None:
        return self._snapshot.global_data if self._snapshot else None

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; returns a function that unregisters it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as e:
                logger.error("Portfolio listener failed: %s", e)

    def _set_state(self, state: ControllerState) -> None:
        if state is not self._state:
            logger.debug("Controller state %s -> %s", self._state.value, state.value)
            self._state = state

    # ------------------------------------------------------------------
    # Derivation
    # ------------------------------------------------------------------

    def _rematerialize(self) -> None:
        if self._snapshot is None or self._ledger is None:
            self._view = ()
        else:
            self._view = reconcile(self._snapshot, self._ledger)
        self._stats = compute(self._view)

    # ------------------------------------------------------------------
    # Ledger loading
    # ------------------------------------------------------------------

    async def _load_ledger(self) -> None:
        timeout = self._config.fetch_timeout_seconds
        try:
            raw = await asyncio.wait_for(self._store.load(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "Holdings store did not answer within %.1fs, starting empty", timeout
            )
            raw = {}
        except StorageUnavailable as e:
            logger.warning("Holdings store unavailable, starting empty: %s", e)
            raw = {}
        except Exception as e:
            logger.error("Unexpected holdings store error, starting empty: %s", e)
            raw = {}
        self._ledger = HoldingsLedger.from_mapping(raw)
        self._last_saved = self._ledger
        logger.info("Loaded %d holdings", len(self._ledger))

    async def _ensure_ledger(self) -> None:
        if self._ledger is not None:
            return
        if self._ledger_task is None:
            self._ledger_task = asyncio.ensure_future(self._load_ledger())
        task = self._ledger_task
        try:
            await task
        finally:
            if task.done() and (task.cancelled() or task.exception() is not None):
                self._ledger_task = None

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Load the ledger and perform the first market refresh."""
        await self.refresh(force=True)

    def refresh(self, force: bool = False) -> asyncio.Task:
        """Trigger a market-data refresh and return its task.

        While a refresh is in flight the same task is returned, unless
        ``force`` is set, in which case a newer request is issued and its
        result supersedes any older one still pending.
        """
        current = self._current_refresh
        if current is not None and not current.done() and not force:
            return current

        self._issued_seq += 1
        seq = self._issued_seq
        self._set_state(ControllerState.LOADING)
        self._notify()

        task = asyncio.ensure_future(self._run_refresh(seq))
        self._current_refresh = task
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        logger.debug("Refresh #%d issued", seq)
        return task

    async def _run_refresh(self, seq: int) -> None:
        timeout = self._config.fetch_timeout_seconds
        try:
            await self._ensure_ledger()
            snapshot = await asyncio.wait_for(
                self._source.fetch_snapshot(), timeout=timeout
            )
        except asyncio.TimeoutError:
            self._apply_failure(seq, FetchTimeout(timeout))
        except FetchFailure as e:
            self._apply_failure(seq, e)
        except Exception as e:
            logger.error("Unexpected market data error: %s", e)
            self._apply_failure(seq, FetchFailure(f"Unexpected error: {e}"))
        else:
            self._apply_snapshot(seq, snapshot)

    def _settle(self) -> None:
        if self._ledger is not None and not self._other_refresh_pending():
            self._set_state(ControllerState.READY)

    def _other_refresh_pending(self) -> bool:
        me = asyncio.current_task()
        return any(not t.done() for t in self._inflight if t is not me)

    def _apply_snapshot(self, seq: int, snapshot: MarketSnapshot) -> None:
        if seq <= self._applied_seq:
            logger.debug(
                "Discarding refresh #%d (already applied #%d)", seq, self._applied_seq
            )
            self._settle()
            self._notify()
            return

        self._snapshot = replace(snapshot, sequence=seq)
        self._applied_seq = seq
        self.is_stale = False
        self.last_error = None
        self._rematerialize()
        self._settle()
        logger.info(
            "Market snapshot #%d applied: %d coins, %d portfolio entries",
            seq,
            len(snapshot.coins),
            len(self._view),
        )
        self._notify()

    def _apply_failure(self, seq: int, error: FetchFailure) -> None:
        if seq <= self._applied_seq:
            logger.debug("Ignoring failure of superseded refresh #%d: %s", seq, error)
        elif seq < self._issued_seq:
            logger.debug("Refresh #%d failed, newer request pending: %s", seq, error)
        else:
            logger.warning("Market data refresh failed, data may be stale: %s", error)
            self.is_stale = True
            self.last_error = error
            self._rematerialize()
        self._settle()
        self._notify()

    async def run_continuous(self, interval_minutes: int | None = None) -> None:
        """Refresh periodically until cancelled."""
        interval = interval_minutes or self._config.refresh_interval_minutes
        logger.info("Starting continuous refresh (every %d minutes)", interval)

        while True:
            try:
                await self.refresh()
                await asyncio.sleep(interval * 60)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("Error in refresh loop: %s", e)
                await asyncio.sleep(60)

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    def _require_editable(self, operation: str) -> HoldingsLedger:
        if self._state is not ControllerState.READY or self._ledger is None:
            raise InvalidStateError(operation, self._state.value)
        return self._ledger

    def set_holding(self, coin_id: str, quantity: str | float) -> None:
        """Set the held quantity of ``coin_id``.

        Raises:
            ValidationError: quantity is not a non-negative number; nothing changes.
            InvalidStateError: the controller is not Ready (starting or refreshing).
        """
        ledger = self._require_editable("set holding")
        self._commit(set_holding(ledger, coin_id, quantity))
        logger.info("Holding set: %s = %s", coin_id, self._ledger.quantity(coin_id))

    def delete_holding(self, coin_id: str) -> None:
        """Remove ``coin_id`` from the ledger. Unknown ids are ignored."""
        ledger = self._require_editable("delete holding")
        updated = delete_holding(ledger, coin_id)
        if updated is ledger:
            logger.debug("Delete of %s ignored: not held", coin_id)
            return
        self._commit(updated)
        logger.info("Holding deleted: %s", coin_id)

    def _commit(self, ledger: HoldingsLedger) -> None:
        self._ledger = ledger
        self._rematerialize()
        self._notify()
        self._schedule_save()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _schedule_save(self) -> None:
        task = asyncio.ensure_future(self._persist())
        self._pending_saves.add(task)
        task.add_done_callback(self._pending_saves.discard)

    async def _persist(self) -> None:
        async with self._save_lock:
            ledger = self._ledger
            if ledger is None or ledger is self._last_saved:
                return

            attempts = self._config.save_retries + 1
            last_error: StorageUnavailable | None = None
            for attempt in range(1, attempts + 1):
                try:
                    await self._store.save(ledger.as_dict())
                except StorageUnavailable as e:
                    last_error = e
                except Exception as e:
                    logger.error("Unexpected holdings store error: %s", e)
                    last_error = StorageUnavailable(f"Unexpected error: {e}")
                else:
                    self._last_saved = ledger
                    if self.persist_error is not None:
                        self.persist_error = None
                        self._notify()
                    return

                logger.warning(
                    "Saving holdings failed (attempt %d/%d): %s",
                    attempt,
                    attempts,
                    last_error,
                )
                if attempt < attempts:
                    await asyncio.sleep(self._config.save_retry_delay_seconds)

            self.persist_error = last_error
            logger.warning("Holdings not persisted; in-memory ledger remains current")
            self._notify()

    async def flush(self) -> None:
        """Wait for every scheduled save to finish."""
        while self._pending_saves:
            await asyncio.gather(*list(self._pending_saves))

    async def close(self) -> None:
        """Wait for in-flight refreshes and pending saves."""
        if self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)
        await self.flush()
