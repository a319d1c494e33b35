import logging
from typing import Callable, List, Optional

from selfisolation.configuration import IsolationConfiguration
from selfisolation.isolation.isolation_logical_state import (
    IsolationFinishedButNotAcknowledged,
    IsolationLogicalState,
    Isolating,
    NotIsolating,
)
from selfisolation.isolation.isolation_state_store import IsolationStateStore
from selfisolation.records import MetricEvent, MetricsRecorder
from selfisolation.time import GregorianDay

logger = logging.getLogger(__name__)


class IsolationStateManager:
    """
    Keeps the current isolation logical state up to date.

    The state is recomputed whenever the store changes, when the application
    comes to the foreground and on every ``tick`` (which is how a change of
    day or of configuration is noticed). Observers are only told about values
    that differ from the last one published.
    """

    def __init__(self, store: IsolationStateStore):
        self.store = store
        self._observers: List[Callable[[IsolationLogicalState], None]] = []
        self._state: IsolationLogicalState = store.logical_state()
        self._today: Optional[GregorianDay] = None
        self._configuration: Optional[IsolationConfiguration] = None
        store.subscribe(lambda _: self.refresh())

    @property
    def state(self) -> IsolationLogicalState:
        return self._state

    def subscribe(
        self, observer: Callable[[IsolationLogicalState], None]
    ) -> Callable[[], None]:
        self._observers.append(observer)

        def unsubscribe():
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def refresh(self, today: Optional[GregorianDay] = None) -> IsolationLogicalState:
        if today is None:
            today = self.store.date_provider.current_gregorian_day()
        self._today = today
        self._configuration = self.store.configuration
        state = self.store.logical_state(today)
        if state != self._state:
            logger.info(f"Isolation state is now {type(state).__name__}")
            self._state = state
            for observer in list(self._observers):
                try:
                    observer(state)
                except Exception:
                    logger.exception("Isolation logical state observer failed")
        return self._state

    def on_application_became_active(self) -> IsolationLogicalState:
        return self.refresh()

    def tick(self) -> IsolationLogicalState:
        """
        Re-evaluates the state if the day or the configuration has changed
        since the last refresh.
        """
        today = self.store.date_provider.current_gregorian_day()
        if today == self._today and self.store.configuration == self._configuration:
            return self._state
        return self.refresh(today)

    def record_metrics(self, recorder: MetricsRecorder, timestamp=None):
        """
        Signposts what the subject is isolating for, once per background run.
        """
        state = self._state
        if isinstance(state, Isolating):
            isolation = state.isolation
            recorder.signpost(MetricEvent.is_isolating_background_tick, timestamp)
            if isolation.is_self_diagnosed:
                recorder.signpost(
                    MetricEvent.is_isolating_for_self_diagnosed_background_tick,
                    timestamp,
                )
            if isolation.has_positive_test_result:
                recorder.signpost(
                    MetricEvent.is_isolating_for_tested_positive_background_tick,
                    timestamp,
                )
            if isolation.is_contact_case:
                recorder.signpost(
                    MetricEvent.is_isolating_for_had_risky_contact_background_tick,
                    timestamp,
                )
        elif isinstance(state, IsolationFinishedButNotAcknowledged) or (
            isinstance(state, NotIsolating)
            and state.finished_isolation_that_we_have_not_deleted_yet is not None
        ):
            recorder.signpost(
                MetricEvent.has_finished_isolation_background_tick, timestamp
            )
