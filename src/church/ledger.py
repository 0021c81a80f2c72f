"""Append-only, hash-chained deed ledger."""

import logging
import threading
import time
import uuid
from typing import Any, Iterable, Iterator, Optional

from .errors import DuplicateIdError, IntegrityError
from .hashing import GENESIS_HASH
from .models.deed import DeedCategory, DeedEvent

logger = logging.getLogger(__name__)


def new_deed(
    *,
    prev_hash: str,
    actor_id: str,
    deed_type: str,
    target_ids: Optional[list[str]] = None,
    tags: Optional[list[str]] = None,
    context_json: Optional[dict[str, Any]] = None,
    ethics_flags: Optional[list[str]] = None,
    life_harm_flag: bool = False,
    timestamp: Optional[int] = None,
    event_id: Optional[str] = None,
) -> DeedEvent:
    """Build a sealed DeedEvent on top of prev_hash.

    Args:
        prev_hash: Ledger.last_hash() of the target ledger, or GENESIS_HASH
        actor_id: Acting party
        deed_type: Category tag
        target_ids: Affected parties
        tags: Free-form labels
        context_json: Opaque payload
        ethics_flags: Ethical review outcomes
        life_harm_flag: True if the deed caused harm
        timestamp: Epoch seconds; defaults to the wall clock
        event_id: Defaults to a new uuid4

    Returns:
        A DeedEvent whose self_hash matches its content
    """
    event = DeedEvent(
        event_id=event_id or str(uuid.uuid4()),
        timestamp=int(time.time()) if timestamp is None else timestamp,
        prev_hash=prev_hash,
        actor_id=actor_id,
        target_ids=list(target_ids or []),
        deed_type=deed_type,
        tags=list(tags or []),
        context_json=dict(context_json or {}),
        ethics_flags=list(ethics_flags or []),
        life_harm_flag=life_harm_flag,
    )
    return event.sealed()


class ActorEvents:
    """Restartable view over the events involving one actor.

    Bound to the ledger snapshot taken when the view was created; iterating
    again replays the same events in ledger order.
    """

    def __init__(self, events: tuple[DeedEvent, ...], actor_id: str):
        self._events = events
        self.actor_id = actor_id

    def __iter__(self) -> Iterator[DeedEvent]:
        return (event for event in self._events if event.involves(self.actor_id))

    def __bool__(self) -> bool:
        return any(True for _ in self)


class Ledger:
    """Append-only deed ledger.

    Single writer: append is serialized behind a lock. Readers work on a
    tuple snapshot, so they never see a half-appended event. Events are
    never mutated or removed once appended.
    """

    def __init__(self) -> None:
        self._events: list[DeedEvent] = []
        self._ids: set[str] = set()
        self._write_lock = threading.Lock()

    @classmethod
    def from_events(cls, events: Iterable[DeedEvent]) -> "Ledger":
        """Rebuild a ledger by replaying events through append."""
        ledger = cls()
        for event in events:
            ledger.append(event)
        return ledger

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[DeedEvent]:
        return iter(self.snapshot())

    def snapshot(self) -> tuple[DeedEvent, ...]:
        return tuple(self._events)

    def last_hash(self) -> Optional[str]:
        events = self._events
        return events[-1].self_hash if events else None

    def next_prev_hash(self) -> str:
        """prev_hash the next appended event must carry."""
        return self.last_hash() or GENESIS_HASH

    def get(self, event_id: str) -> Optional[DeedEvent]:
        for event in self.snapshot():
            if event.event_id == event_id:
                return event
        return None

    def append(self, event: DeedEvent) -> None:
        """Append an event after validating its linkage and digest.

        Raises:
            DuplicateIdError: event_id is already present (checked first)
            IntegrityError: prev_hash is not the current head, or self_hash
                does not match the event content
        """
        with self._write_lock:
            if event.event_id in self._ids:
                logger.warning(f"Rejected duplicate event_id {event.event_id}")
                raise DuplicateIdError(event.event_id)
            expected_prev = self.next_prev_hash()
            if event.prev_hash != expected_prev:
                logger.warning(f"Rejected {event.event_id}: prev_hash does not match ledger head")
                raise IntegrityError(
                    f"prev_hash {event.prev_hash[:12]}... does not match head {expected_prev[:12]}...",
                    index=len(self._events),
                )
            if event.self_hash != event.compute_self_hash():
                logger.warning(f"Rejected {event.event_id}: self_hash does not match content")
                raise IntegrityError("self_hash does not match event content", index=len(self._events))

            self._events.append(event)
            self._ids.add(event.event_id)

        logger.debug(f"Appended {event.event_id} ({event.deed_type}) by {event.actor_id}")
        if not event.is_harmful and event.category is not DeedCategory.UNRECOGNIZED:
            logger.info(f"CHURCH recommendation for deed {event.event_id} by {event.actor_id} ({event.category.value})")

    def record(
        self,
        *,
        actor_id: str,
        deed_type: str,
        target_ids: Optional[list[str]] = None,
        tags: Optional[list[str]] = None,
        context_json: Optional[dict[str, Any]] = None,
        ethics_flags: Optional[list[str]] = None,
        life_harm_flag: bool = False,
        timestamp: Optional[int] = None,
    ) -> DeedEvent:
        """Build a deed on the current head and append it.

        Returns:
            The appended DeedEvent
        """
        event = new_deed(
            prev_hash=self.next_prev_hash(),
            actor_id=actor_id,
            deed_type=deed_type,
            target_ids=target_ids,
            tags=tags,
            context_json=context_json,
            ethics_flags=ethics_flags,
            life_harm_flag=life_harm_flag,
            timestamp=timestamp,
        )
        self.append(event)
        return event

    def verify_chain(self) -> None:
        """Re-check every link and every self_hash.

        Raises:
            IntegrityError: carrying the index of the first broken event
        """
        expected_prev = GENESIS_HASH
        for index, event in enumerate(self.snapshot()):
            if event.prev_hash != expected_prev:
                raise IntegrityError("prev_hash does not match previous self_hash", index=index)
            if event.self_hash != event.compute_self_hash():
                raise IntegrityError("self_hash does not match event content", index=index)
            expected_prev = event.self_hash

    def events_for(self, actor_id: str) -> ActorEvents:
        return ActorEvents(self.snapshot(), actor_id)
