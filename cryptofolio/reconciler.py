"""Pure reconciliation of market data with the holdings ledger."""
from __future__ import annotations

import logging
import math
import re
from decimal import Decimal, InvalidOperation

from .errors import ValidationError
from .models import HoldingsLedger, MarketSnapshot, PortfolioEntry

logger = logging.getLogger(__name__)

_GROUPED_THOUSANDS = re.compile(r"\d{1,3}(,\d{3})+(\.\d*)?")


def reconcile(
    snapshot: MarketSnapshot, ledger: HoldingsLedger
) -> tuple[PortfolioEntry, ...]:
    """Join the latest snapshot with the ledger into portfolio entries.

    Entries come out in the snapshot's market-cap-rank order. Holdings with
    a quantity of zero are not materialised. A holding whose coin is missing
    from the snapshot is skipped for this view only; the ledger keeps it.
    """
    entries: list[PortfolioEntry] = []
    for coin in snapshot.rank_order():
        quantity = ledger.quantity(coin.id)
        if quantity is None or quantity <= 0:
            continue
        entries.append(PortfolioEntry(coin=coin, quantity=quantity))

    listed = {coin.id for coin in snapshot.coins}
    dangling = [
        coin_id for coin_id, quantity in ledger.items()
        if quantity > 0 and coin_id not in listed
    ]
    if dangling:
        logger.debug(
            "Holdings not in current market data (kept in ledger): %s",
            ", ".join(sorted(dangling)),
        )

    return tuple(entries)


def parse_quantity(quantity: str | float | int | Decimal) -> float:
    """Parse user input into a non-negative finite quantity.

    Raises:
        ValidationError: for non-numeric, negative, NaN or infinite input, or
            a comma that is not a thousands separator.
    """
    if isinstance(quantity, bool):
        raise ValidationError(f"Quantity must be a number, got {quantity!r}")

    if isinstance(quantity, str):
        text = quantity.strip()
        if not text:
            raise ValidationError("Quantity is empty")
        if "," in text:
            if not _GROUPED_THOUSANDS.fullmatch(text):
                raise ValidationError(f"Quantity must be a number, got {quantity!r}")
            text = text.replace(",", "")
        try:
            value = Decimal(text)
        except InvalidOperation:
            raise ValidationError(f"Quantity must be a number, got {quantity!r}") from None
    elif isinstance(quantity, (int, float, Decimal)):
        value = Decimal(str(quantity)) if not isinstance(quantity, Decimal) else quantity
    else:
        raise ValidationError(f"Quantity must be a number, got {quantity!r}")

    if not value.is_finite():
        raise ValidationError(f"Quantity must be finite, got {quantity!r}")
    if value < 0:
        raise ValidationError(f"Quantity cannot be negative, got {quantity!r}")

    result = float(value)
    if not math.isfinite(result):
        raise ValidationError(f"Quantity is out of range: {quantity!r}")
    return result


def set_holding(
    ledger: HoldingsLedger, coin_id: str, quantity: str | float | int | Decimal
) -> HoldingsLedger:
    """Return a new ledger with ``coin_id`` set to ``quantity``.

    The input ledger is never modified; on a ValidationError the caller
    still holds the unchanged ledger.
    """
    if not coin_id or not coin_id.strip():
        raise ValidationError("Coin id is empty")
    value = parse_quantity(quantity)
    updated = ledger.as_dict()
    updated[coin_id] = value
    return HoldingsLedger(updated)


def delete_holding(ledger: HoldingsLedger, coin_id: str) -> HoldingsLedger:
    """Return a new ledger without ``coin_id``. Absent ids are a no-op."""
    if coin_id not in ledger:
        return ledger
    updated = ledger.as_dict()
    del updated[coin_id]
    return HoldingsLedger(updated)
