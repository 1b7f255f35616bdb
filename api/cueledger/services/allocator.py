"""Waterfall debit allocation across ordered balance buckets.

Earlier buckets are always exhausted before later ones are touched. The
function is pure: the ledger computes the full allocation, checks the
shortfall, and only then writes anything.
"""
from dataclasses import dataclass, field
from decimal import Decimal

from cueledger.errors import InvalidAmount


@dataclass(frozen=True)
class Allocation:
    """How much to take from each bucket, and what could not be covered."""
    per_bucket: dict[str, Decimal] = field(default_factory=dict)
    shortfall: Decimal = Decimal('0')

    @property
    def covered(self) -> Decimal:
        return sum(self.per_bucket.values(), Decimal('0'))

    @property
    def is_complete(self) -> bool:
        return self.shortfall == 0


def allocate(buckets: list[tuple[str, Decimal]], target: Decimal) -> Allocation:
    """Split ``target`` over ``buckets`` (ordered ``(name, available)`` pairs)."""
    if target < 0:
        raise InvalidAmount(target)

    remaining = target
    per_bucket: dict[str, Decimal] = {}
    for name, available in buckets:
        take = min(remaining, max(available, Decimal('0')))
        per_bucket[name] = take
        remaining -= take

    return Allocation(per_bucket=per_bucket, shortfall=remaining)
