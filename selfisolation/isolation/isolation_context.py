"""
Entry points used by the application flows: self-diagnosis, test results,
risky contacts, daily contact testing and the acknowledgements that follow
from them.
"""

import datetime
import logging
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Tuple, Union

from selfisolation.configuration import (
    CachedIsolationConfiguration,
    IsolationConfiguration,
)
from selfisolation.global_context import GlobalContext
from selfisolation.isolation.acknowledgement import (
    AcknowledgementKind,
    AcknowledgementMonitor,
    AcknowledgementState,
    AcknowledgementToken,
)
from selfisolation.isolation.isolation import Isolation
from selfisolation.isolation.isolation_info import (
    ContactCaseInfo,
    IndexCaseInfo,
    IsolationStateInfo,
    RiskInfo,
    SymptomaticInfo,
    TestInfo,
    VirologyTestResult,
)
from selfisolation.isolation.isolation_logical_state import (
    IsolationLogicalState,
    IsolationState,
    active_isolation,
    is_isolating,
    make_isolation_state,
    resolve,
)
from selfisolation.isolation.isolation_state_manager import IsolationStateManager
from selfisolation.isolation.isolation_state_store import IsolationStateStore
from selfisolation.isolation.my_data import MyDataSummary, make_my_data
from selfisolation.isolation.test_result_metrics import TestResultMetricsHandler
from selfisolation.isolation.test_result_operation import StoreOperation, decide
from selfisolation.records import MetricEvent, MetricsRecorder
from selfisolation.storage import KeyValueStore
from selfisolation.time import DateProvider, GregorianDay

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AcknowledgementCompletionActions:
    should_suggest_booking_follow_up_test: bool
    should_allow_key_submission: bool


@dataclass(frozen=True)
class TestResultNotNeeded:
    __test__ = False


@dataclass(frozen=True)
class AskForSymptomsOnsetDay:
    test_end_day: Optional[GregorianDay]


@dataclass(frozen=True)
class NeededToAcknowledge:
    """
    A test result waiting to be acknowledged, together with what
    acknowledging it will do to the isolation record.
    """

    result: VirologyTestResult
    operation: StoreOperation
    received_on_day: GregorianDay
    current_state: IsolationLogicalState
    new_state_info: Optional[IsolationStateInfo]
    new_state: IsolationLogicalState

    @property
    def index_case_info(self) -> Optional[IndexCaseInfo]:
        if self.new_state_info is None:
            return None
        return self.new_state_info.isolation_info.index_case_info


TestResultAcknowledgementState = Union[
    TestResultNotNeeded, AskForSymptomsOnsetDay, NeededToAcknowledge
]


@dataclass(frozen=True)
class HasNoTest:
    pass


@dataclass(frozen=True)
class HasTest:
    should_change_advice_due_to_symptoms: bool


ExistingPositiveTestState = Union[HasNoTest, HasTest]


@dataclass(frozen=True)
class DailyContactTestingDisabled:
    pass


@dataclass(frozen=True)
class DailyContactTestingEnabled:
    isolation: Isolation


DailyContactTestingEarlyTerminationSupport = Union[
    DailyContactTestingDisabled, DailyContactTestingEnabled
]


class IsolationContext:
    """
    Wires the isolation store, the state manager and the acknowledgement
    monitor together.

    Parameters
    ----------
    isolation_configuration:
        the configuration, or a cached configuration refreshed by the
        background jobs
    store:
        where the isolation record is persisted
    date_provider:
        source of the current time
    remove_exposure_detection_notifications:
        called once a contact-only isolation has been acknowledged
    metrics:
        recorder signposts go to; defaults to the process-wide one
    """

    def __init__(
        self,
        isolation_configuration: Union[
            IsolationConfiguration, CachedIsolationConfiguration
        ],
        store: KeyValueStore,
        date_provider: DateProvider,
        remove_exposure_detection_notifications: Callable[[], None] = lambda: None,
        metrics: Optional[MetricsRecorder] = None,
    ):
        self.isolation_configuration = isolation_configuration
        self.date_provider = date_provider
        self.remove_exposure_detection_notifications = (
            remove_exposure_detection_notifications
        )
        if metrics is None:
            metrics = GlobalContext.get_metrics_recorder()
        self.metrics = metrics
        self.isolation_state_store = IsolationStateStore(
            store=store,
            configuration=isolation_configuration,
            date_provider=date_provider,
        )
        self.isolation_state_manager = IsolationStateManager(self.isolation_state_store)
        self.acknowledgement_monitor = AcknowledgementMonitor()
        self.should_ask_for_symptoms = False
        self.isolation_state_manager.subscribe(
            lambda _: self.isolation_acknowledgement_state()
        )

    def _signpost(self, event: MetricEvent):
        self.metrics.signpost(event, self.date_provider.current_date)

    @property
    def today(self) -> GregorianDay:
        return self.date_provider.current_gregorian_day()

    @property
    def logical_state(self) -> IsolationLogicalState:
        return self.isolation_state_manager.tick()

    def isolation_state(self) -> IsolationState:
        return make_isolation_state(self.logical_state)

    # acknowledgement of isolation start and end

    def isolation_acknowledgement_state(self) -> AcknowledgementState:
        return self.acknowledgement_monitor.update(
            self.logical_state, self.date_provider.current_date
        )

    def subscribe_acknowledgement_state(
        self, observer: Callable[[AcknowledgementState], None]
    ) -> Callable[[], None]:
        return self.acknowledgement_monitor.subscribe(observer)

    def on_application_became_active(self) -> AcknowledgementState:
        self.isolation_state_manager.on_application_became_active()
        return self.isolation_acknowledgement_state()

    def acknowledge(self, token: AcknowledgementToken) -> bool:
        """
        Performs the acknowledgement ``token`` stands for. Side effects only
        happen the first time, so acknowledging twice is harmless.
        """
        changed = self.isolation_state_store.acknowledge(token, self.today)
        if not changed:
            return False
        if token.kind is AcknowledgementKind.start:
            self._signpost(MetricEvent.acknowledged_start_of_isolation)
            if token.isolation.is_contact_case_only:
                self.remove_exposure_detection_notifications()
                self._signpost(
                    MetricEvent.acknowledged_start_of_isolation_due_to_risky_contact
                )
        else:
            self._signpost(MetricEvent.acknowledged_end_of_isolation)
        self.isolation_acknowledgement_state()
        return True

    # test results

    def make_result_acknowledgement_state(
        self, result: Optional[VirologyTestResult]
    ) -> TestResultAcknowledgementState:
        if result is None:
            return TestResultNotNeeded()
        if self.should_ask_for_symptoms:
            return AskForSymptomsOnsetDay(test_end_day=result.end_day)
        store = self.isolation_state_store
        today = self.today
        configuration = store.configuration
        state_info = store.isolation_state_info
        current_state = store.logical_state(today)
        operation = decide(
            current_state,
            state_info.isolation_info if state_info is not None else None,
            result,
            configuration,
            received_on_day=today,
        )
        if operation is StoreOperation.ignore:
            new_state_info = state_info
        else:
            test_info = TestInfo.from_virology_test_result(result, received_on_day=today)
            new_state_info = store.new_isolation_state_info(
                store.isolation_info_with_test(test_info, operation, today), today
            )
        return NeededToAcknowledge(
            result=result,
            operation=operation,
            received_on_day=today,
            current_state=current_state,
            new_state_info=new_state_info,
            new_state=resolve(new_state_info, today, configuration),
        )

    def acknowledge_test_result(
        self, state: NeededToAcknowledge
    ) -> AcknowledgementCompletionActions:
        """
        Stores the outcome worked out by ``make_result_acknowledgement_state``
        and says what the flow should offer next.

        Raises
        ------
        IsolationStorageError
            If the record could not be written. Nothing is signposted then.
        """
        current_isolating = is_isolating(state.current_state)
        new_isolating = is_isolating(state.new_state)
        state_info = state.new_state_info
        if state_info is not None:
            if not new_isolating:
                state_info = state_info.acknowledging_end()
            elif not current_isolating:
                state_info = state_info.restarting_acknowledgement()
            self.isolation_state_store.replace(state_info)
        TestResultMetricsHandler(self.metrics).handle(
            state.result, state.operation, self.date_provider.current_date
        )
        result = state.result
        current_isolation = active_isolation(state.current_state)
        if (
            current_isolation is not None
            and result.requires_confirmatory_test
            and current_isolation.has_confirmed_positive_test_result
        ):
            should_suggest_booking_follow_up_test = False
        elif new_isolating and result.requires_confirmatory_test:
            should_suggest_booking_follow_up_test = (
                state.operation is not StoreOperation.overwrite_and_complete
            )
        else:
            should_suggest_booking_follow_up_test = False
        return AcknowledgementCompletionActions(
            should_suggest_booking_follow_up_test=should_suggest_booking_follow_up_test,
            should_allow_key_submission=state.operation is not StoreOperation.ignore,
        )

    def did_confirm_symptoms(self):
        self._signpost(MetricEvent.did_have_symptoms_before_received_test_result)

    def set_onset_day_before_test_result(self, onset_day: Optional[GregorianDay]):
        symptomatic_info = SymptomaticInfo(
            self_diagnosis_day=self.date_provider.current_gregorian_day(
                datetime.timezone.utc
            ),
            onset_day=onset_day,
        )
        self.isolation_state_store.set_index_case_info(
            IndexCaseInfo(symptomatic_info=symptomatic_info), self.today
        )
        self._signpost(
            MetricEvent.did_remember_onset_symptoms_date_before_received_test_result
        )

    def finish_asking_for_symptoms(self):
        self.should_ask_for_symptoms = False

    # symptoms and contacts

    def handle_symptoms_isolation_state(
        self, onset_day: Optional[GregorianDay]
    ) -> Tuple[IsolationState, ExistingPositiveTestState]:
        """
        Records a self-diagnosis.

        Parameters
        ----------
        onset_day:
            the day symptoms started, if the user remembers it

        Returns
        -------
        The isolation state to show and whether an existing positive test
        changes the advice.
        """
        store = self.isolation_state_store
        today = self.today
        current_state = store.logical_state(today)
        symptomatic_info = SymptomaticInfo(self_diagnosis_day=today, onset_day=onset_day)
        isolation = active_isolation(current_state)
        index_case_info = store.isolation_info.index_case_info
        if (
            isolation is not None
            and isolation.has_positive_test_result
            and index_case_info is not None
            and index_case_info.test_info is not None
        ):
            if symptomatic_info.assumed_onset_day > index_case_info.assumed_test_end_day:
                new_state = store.set_symptomatic_info(symptomatic_info, today)
                return make_isolation_state(new_state), HasTest(
                    should_change_advice_due_to_symptoms=True
                )
            return make_isolation_state(current_state), HasTest(
                should_change_advice_due_to_symptoms=False
            )
        new_state = store.set_symptomatic_info(
            symptomatic_info, today, keep_test_info=False
        )
        if is_isolating(new_state):
            self._signpost(MetricEvent.completed_questionnaire_and_started_isolation)
        return make_isolation_state(new_state), HasNoTest()

    def handle_contact_case(
        self, risk_info: RiskInfo, send_notification: Callable[[], None] = lambda: None
    ):
        if not risk_info.is_considered_risky:
            logger.info(f"Ignoring contact on {risk_info.day} not considered risky")
            return
        today = self.today
        was_isolating = is_isolating(self.isolation_state_store.logical_state(today))
        contact_case_info = ContactCaseInfo(
            exposure_day=risk_info.day, isolation_from_start_of_day=today
        )
        new_state = self.isolation_state_store.set_contact_case_info(
            contact_case_info, today
        )
        if not was_isolating and is_isolating(new_state):
            self._signpost(MetricEvent.started_isolation)
        send_notification()

    # daily contact testing

    def daily_contact_testing_early_termination_support(
        self,
    ) -> DailyContactTestingEarlyTerminationSupport:
        isolation = active_isolation(self.logical_state)
        if isolation is None or not isolation.is_contact_case_only:
            return DailyContactTestingDisabled()
        return DailyContactTestingEnabled(isolation)

    def opt_out_of_isolation(self) -> bool:
        """
        Ends a contact isolation early after a negative daily contact test.
        Returns False, changing nothing, unless the subject is isolating as a
        contact case only.
        """
        support = self.daily_contact_testing_early_termination_support()
        if isinstance(support, DailyContactTestingDisabled):
            logger.warning(
                "Cannot opt out of isolation unless isolating as a contact case only"
            )
            return False
        store = self.isolation_state_store
        contact_case_info = store.isolation_info.contact_case_info
        self._signpost(MetricEvent.declared_negative_result_from_dct)
        today = self.today
        store.set_contact_case_info(
            replace(contact_case_info, opt_out_of_isolation_day=today), today
        )
        store.acknowledge_end_of_isolation()
        return True

    # background work and read models

    def _update_configuration(self) -> bool:
        updated = self.isolation_configuration.update()
        self.isolation_state_manager.tick()
        return updated

    def make_background_jobs(self) -> List[Callable[[], object]]:
        jobs = []
        if isinstance(self.isolation_configuration, CachedIsolationConfiguration):
            jobs.append(self._update_configuration)
        jobs += [
            self.isolation_state_manager.tick,
            lambda: self.isolation_state_manager.record_metrics(
                self.metrics, self.date_provider.current_date
            ),
            lambda: self.isolation_state_store.prune(self.today),
        ]
        return jobs

    def my_data(self) -> MyDataSummary:
        local_day = self.date_provider.current_local_day
        return make_my_data(
            self.isolation_state_store.isolation_state_info,
            self.logical_state,
            local_day.gregorian_day,
        )
