"""
Works out which acknowledgement, if any, the user owes for their isolation.

Acknowledgements are requested through tokens rather than callbacks: a state
that needs acknowledging carries an ``AcknowledgementToken`` and the token is
handed back to the store (or the isolation context) to perform it.
"""

import datetime
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Union

from selfisolation.isolation.isolation import Isolation
from selfisolation.isolation.isolation_logical_state import (
    IsolationFinishedButNotAcknowledged,
    IsolationLogicalState,
    Isolating,
    NotIsolating,
)

logger = logging.getLogger(__name__)

# how long before the end of an isolation the user is asked to acknowledge it
END_OF_ISOLATION_ACKNOWLEDGEMENT_THRESHOLD = datetime.timedelta(hours=3)


class AcknowledgementKind(Enum):
    start = "start"
    end = "end"


@dataclass(frozen=True)
class AcknowledgementToken:
    kind: AcknowledgementKind
    isolation: Isolation


@dataclass(frozen=True)
class NotNeeded:
    pass


@dataclass(frozen=True)
class NeededForStart:
    isolation: Isolation

    @property
    def token(self) -> AcknowledgementToken:
        return AcknowledgementToken(AcknowledgementKind.start, self.isolation)


@dataclass(frozen=True)
class NeededForEnd:
    isolation: Isolation

    @property
    def token(self) -> AcknowledgementToken:
        return AcknowledgementToken(AcknowledgementKind.end, self.isolation)


AcknowledgementState = Union[NotNeeded, NeededForStart, NeededForEnd]


def _is_about_to_end(isolation: Isolation, now: datetime.datetime) -> bool:
    if now.tzinfo is None:
        raise ValueError("now must be timezone aware")
    end = isolation.end_date(now.tzinfo)
    return end - now <= END_OF_ISOLATION_ACKNOWLEDGEMENT_THRESHOLD


def acknowledgement_state(
    logical_state: IsolationLogicalState, now: datetime.datetime
) -> AcknowledgementState:
    """
    Derives the acknowledgement the user owes.

    Parameters
    ----------
    logical_state:
        the current isolation logical state
    now:
        current wall clock time, timezone aware. The isolation end is taken
        as the start of ``until_start_of_day`` in ``now``'s timezone.
    """
    if isinstance(logical_state, Isolating):
        if not logical_state.start_acknowledged:
            return NeededForStart(logical_state.isolation)
        if not logical_state.end_acknowledged and _is_about_to_end(
            logical_state.isolation, now
        ):
            return NeededForEnd(logical_state.isolation)
        return NotNeeded()
    if isinstance(logical_state, IsolationFinishedButNotAcknowledged):
        return NeededForEnd(logical_state.isolation)
    if isinstance(logical_state, NotIsolating):
        return NotNeeded()
    raise TypeError(f"Unexpected isolation logical state {logical_state!r}")


def _end_still_pending(logical_state: IsolationLogicalState, isolation: Isolation) -> bool:
    if isinstance(logical_state, Isolating):
        return logical_state.isolation == isolation and not logical_state.end_acknowledged
    if isinstance(logical_state, IsolationFinishedButNotAcknowledged):
        return logical_state.isolation == isolation
    return False


class AcknowledgementMonitor:
    """
    Publishes acknowledgement states as they change.

    Consecutive equal states are only published once. Once the end of an
    isolation has been asked for it keeps being asked for until it is
    acknowledged or the isolation changes, whatever ``now`` says later.
    """

    def __init__(self):
        self._current: AcknowledgementState = NotNeeded()
        self._latched_end: Optional[NeededForEnd] = None
        self._observers: List[Callable[[AcknowledgementState], None]] = []

    @property
    def current(self) -> AcknowledgementState:
        return self._current

    def subscribe(
        self, observer: Callable[[AcknowledgementState], None]
    ) -> Callable[[], None]:
        self._observers.append(observer)

        def unsubscribe():
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def update(
        self, logical_state: IsolationLogicalState, now: datetime.datetime
    ) -> AcknowledgementState:
        state = acknowledgement_state(logical_state, now)
        latched = self._latched_end
        if latched is not None:
            if _end_still_pending(logical_state, latched.isolation):
                if not isinstance(state, NeededForEnd):
                    state = latched
            else:
                self._latched_end = None
        if isinstance(state, NeededForEnd):
            self._latched_end = state
        if state != self._current:
            self._current = state
            self._publish(state)
        return state

    def _publish(self, state: AcknowledgementState):
        for observer in list(self._observers):
            try:
                observer(state)
            except Exception:
                logger.exception("Acknowledgement state observer failed")
