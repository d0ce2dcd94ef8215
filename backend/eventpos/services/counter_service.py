# Overview: Per-category purchase counters and human-readable purchase ids.

from __future__ import annotations

from ..constants import CHANNEL_PREFIXES, PurchaseChannel
from ..extensions import db
from ..models import PurchaseCounter


COUNTER_PAD = 4
FALLBACK_INITIAL = "X"


def read_counter(category: str) -> PurchaseCounter | None:
    """Read phase: load the counter row for `category` (None if never used)."""
    return db.session.get(PurchaseCounter, category)


def advance(category: str, counter: PurchaseCounter | None) -> int:
    """
    Write phase: bump the counter read by `read_counter` and return the
    new value.

    Must run inside `run_in_transaction`. The row is versioned, so two
    transactions that read the same count cannot both commit; two that both
    create a missing counter collide on the primary key. Either way the
    loser is retried against the fresh value.
    """
    if counter is None:
        counter = PurchaseCounter(key=category, count=1)
        db.session.add(counter)
        return 1

    counter.count = counter.count + 1
    return counter.count


def next_value(category: str) -> int:
    """Read-then-advance in one call, for callers with no other reads."""
    return advance(category, read_counter(category))


def current_value(category: str) -> int:
    counter = read_counter(category)
    return counter.count if counter else 0


def item_initial(name: str | None) -> str:
    """Upper-cased first letter of `name`, or X when it has none."""
    for ch in name or "":
        if ch.isalpha():
            return ch.upper()
    return FALLBACK_INITIAL


def format_purchase_id(channel: PurchaseChannel | str, first_item_name: str | None, count: int) -> str:
    """
    <PREFIX><Initial><count>, count zero-padded to four digits and allowed
    to grow past 9999.

    format_purchase_id("immediate", "Arepa", 42) -> "CGA0042"
    """
    prefix = CHANNEL_PREFIXES[PurchaseChannel(channel)]
    return f"{prefix}{item_initial(first_item_name)}{count:0{COUNTER_PAD}d}"
