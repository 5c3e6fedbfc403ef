"""
Change records reported by vault operations
"""

import logging
from dataclasses import dataclass, asdict
from typing import Iterable, Iterator, List

logger = logging.getLogger("tri_party_vault.events")


@dataclass(frozen=True)
class VaultEvent:
    def to_dict(self) -> dict:
        data = asdict(self)
        data['event'] = type(self).__name__
        return data


@dataclass(frozen=True)
class VaultInitialized(VaultEvent):
    vault: str
    asset: str
    custodian: str
    borrower: str
    lender: str


@dataclass(frozen=True)
class CollateralDeposited(VaultEvent):
    amount: int
    new_total: int


@dataclass(frozen=True)
class ReleaseApproved(VaultEvent):
    by_role: int
    approvals: int  # bitmap after the change


@dataclass(frozen=True)
class CollateralReleased(VaultEvent):
    recipient: str
    amount: int
    remaining: int
    approvals_after: int


@dataclass(frozen=True)
class Paused(VaultEvent):
    pass


@dataclass(frozen=True)
class Unpaused(VaultEvent):
    pass


@dataclass(frozen=True)
class StateSignal(VaultEvent):
    paused: bool
    approvals: int
    amount_locked: int


@dataclass(frozen=True)
class PriceUsed(VaultEvent):
    feed: str
    price: int
    confidence: int
    exponent: int
    publish_time: int


class EventLog:
    """Ordered sink for events of committed operations"""

    def __init__(self):
        self._events: List[VaultEvent] = []

    def publish(self, events: Iterable[VaultEvent]) -> None:
        for event in events:
            logger.debug(f"event {type(event).__name__}: {event}")
            self._events.append(event)

    def of_type(self, event_type) -> List[VaultEvent]:
        return [e for e in self._events if isinstance(e, event_type)]

    def clear(self) -> None:
        self._events.clear()

    def __iter__(self) -> Iterator[VaultEvent]:
        return iter(list(self._events))

    def __len__(self) -> int:
        return len(self._events)
