"""
Pool events - append-only audit log.

Events are emitted only after an operation has committed; a rejected
operation leaves no event behind. A failing subscriber is logged and skipped,
since the operation it observes can no longer be undone.
"""

from dataclasses import asdict, dataclass
from typing import Callable, Iterator, List, Type, TypeVar, Union

from shielded_pool.crypto import bytes_to_hex
from shielded_pool.utils.logger import get_logger

logger = get_logger("events")


@dataclass(frozen=True)
class Deposited:
    leaf_index: int
    amount: int
    commitment: bytes


@dataclass(frozen=True)
class Withdrawn:
    recipient: bytes
    amount: int
    nullifier: bytes


@dataclass(frozen=True)
class Transacted:
    nullifier1: bytes
    nullifier2: bytes
    commitment1: bytes
    commitment2: bytes


PoolEvent = Union[Deposited, Withdrawn, Transacted]
E = TypeVar("E")


def event_to_dict(event: PoolEvent) -> dict:
    """JSON-friendly view of an event (bytes as hex)."""
    data = {"event": type(event).__name__}
    for key, value in asdict(event).items():
        data[key] = bytes_to_hex(value) if isinstance(value, bytes) else value
    return data


class EventLog:
    """In-memory event sink with optional subscribers."""

    def __init__(self):
        self._events: List[PoolEvent] = []
        self._subscribers: List[Callable[[PoolEvent], None]] = []

    def subscribe(self, callback: Callable[[PoolEvent], None]):
        self._subscribers.append(callback)

    def emit(self, event: PoolEvent):
        self._events.append(event)
        for callback in self._subscribers:
            try:
                callback(event)
            except Exception:
                logger.exception(f"Subscriber {callback!r} failed on {type(event).__name__}")

    def of_type(self, event_type: Type[E]) -> List[E]:
        return [e for e in self._events if isinstance(e, event_type)]

    def __iter__(self) -> Iterator[PoolEvent]:
        return iter(list(self._events))

    def __len__(self) -> int:
        return len(self._events)

    def __getitem__(self, index: int) -> PoolEvent:
        return self._events[index]
