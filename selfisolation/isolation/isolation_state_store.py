"""
The single source of truth for the isolation record.

Every mutation is persisted before the in-memory value moves on, and
observers only ever see values that made it to storage.
"""

import logging
from dataclasses import replace
from typing import Callable, List, Optional, Union

from selfisolation.configuration import (
    CachedIsolationConfiguration,
    IsolationConfiguration,
)
from selfisolation.exc import (
    IsolationStorageError,
    InvalidAcknowledgementToken,
    StoredStateVersionError,
)
from selfisolation.isolation.acknowledgement import (
    AcknowledgementKind,
    AcknowledgementToken,
)
from selfisolation.isolation.isolation_info import (
    ContactCaseInfo,
    IndexCaseInfo,
    IsolationInfo,
    IsolationStateInfo,
    SymptomaticInfo,
    TestInfo,
    TestResult,
)
from selfisolation.isolation.isolation_logical_state import (
    IsolationLogicalState,
    NotIsolating,
    is_isolating,
    isolation_of,
    resolve,
)
from selfisolation.isolation.test_result_operation import StoreOperation
from selfisolation.storage import KeyValueStore
from selfisolation.time import DateProvider, GregorianDay

logger = logging.getLogger(__name__)

STORAGE_KEY = "isolation_state_info"
STORAGE_VERSION = 1


def encode_state_info(state_info: IsolationStateInfo) -> dict:
    return {"version": STORAGE_VERSION, STORAGE_KEY: state_info.to_dict()}


def decode_state_info(payload: dict) -> IsolationStateInfo:
    version = payload.get("version")
    if version != STORAGE_VERSION:
        raise StoredStateVersionError(
            f"Unsupported isolation state version {version!r}"
        )
    try:
        return IsolationStateInfo.from_dict(payload[STORAGE_KEY])
    except (KeyError, TypeError, ValueError) as e:
        raise IsolationStorageError(f"Malformed isolation state: {e}") from e


def _merge_test_info(
    stored: Optional[TestInfo],
    incoming: TestInfo,
    operation: StoreOperation,
    today: GregorianDay,
) -> Optional[TestInfo]:
    if operation is StoreOperation.ignore:
        return stored
    if operation is StoreOperation.overwrite:
        return incoming
    if operation is StoreOperation.confirm:
        if stored is None:
            return incoming.confirmed(today)
        return stored.confirmed(today)
    if operation is StoreOperation.overwrite_and_complete:
        if (
            stored is None
            or incoming.result is not TestResult.positive
            or stored.assumed_test_end_day >= incoming.assumed_test_end_day
        ):
            merged = incoming
        else:
            # a repeated positive keeps the original isolation anchor
            merged = replace(
                incoming,
                received_on_day=stored.received_on_day,
                test_end_day=stored.test_end_day,
            )
        if incoming.result is TestResult.positive and stored is not None:
            if stored.confirmed_on_day is not None:
                return merged.confirmed(stored.confirmed_on_day)
        return merged.confirmed(today)
    raise ValueError(f"Unknown store operation {operation!r}")


class IsolationStateStore:
    """
    Holds the isolation record and persists it in a key value store.

    Parameters
    ----------
    store:
        backend the record is persisted in
    configuration:
        the isolation configuration, or a cached configuration whose current
        value is read every time it is needed
    date_provider:
        source of "today" for mutations that do not pass it explicitly
    """

    def __init__(
        self,
        store: KeyValueStore,
        configuration: Union[IsolationConfiguration, CachedIsolationConfiguration],
        date_provider: DateProvider,
    ):
        self.store = store
        self._configuration = configuration
        self.date_provider = date_provider
        self._observers: List[Callable[[Optional[IsolationStateInfo]], None]] = []
        self._state_info = self._load()

    def _load(self) -> Optional[IsolationStateInfo]:
        payload = self.store.get(STORAGE_KEY)
        if payload is None:
            return None
        return decode_state_info(payload)

    @property
    def configuration(self) -> IsolationConfiguration:
        if isinstance(self._configuration, CachedIsolationConfiguration):
            return self._configuration.value
        return self._configuration

    @property
    def isolation_state_info(self) -> Optional[IsolationStateInfo]:
        return self._state_info

    @property
    def isolation_info(self) -> IsolationInfo:
        if self._state_info is None:
            return IsolationInfo()
        return self._state_info.isolation_info

    def _today(self, today: Optional[GregorianDay]) -> GregorianDay:
        if today is None:
            return self.date_provider.current_gregorian_day()
        return today

    def logical_state(self, today: Optional[GregorianDay] = None) -> IsolationLogicalState:
        return resolve(self._state_info, self._today(today), self.configuration)

    def subscribe(
        self, observer: Callable[[Optional[IsolationStateInfo]], None]
    ) -> Callable[[], None]:
        """
        Registers ``observer`` to be called with every new record. Returns a
        callable that removes it again.
        """
        self._observers.append(observer)

        def unsubscribe():
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _publish(self):
        for observer in list(self._observers):
            try:
                observer(self._state_info)
            except Exception:
                logger.exception("Isolation state observer failed")

    def replace(self, state_info: Optional[IsolationStateInfo]):
        """
        Persists ``state_info`` and makes it current. If persisting fails the
        error is raised and nothing changes.
        """
        if state_info == self._state_info:
            return
        if state_info is None:
            self.store.delete(STORAGE_KEY)
        else:
            self.store.set(STORAGE_KEY, encode_state_info(state_info))
        self._state_info = state_info
        self._publish()

    def new_isolation_state_info(
        self,
        isolation_info: IsolationInfo,
        today: Optional[GregorianDay] = None,
    ) -> IsolationStateInfo:
        """
        The record that results from replacing the evidence with
        ``isolation_info``. Acknowledgements are kept unless the subject goes
        from not isolating to isolating, in which case they start over.
        """
        today = self._today(today)
        current = self._state_info
        if current is None:
            return IsolationStateInfo(isolation_info=isolation_info)
        candidate = replace(current, isolation_info=isolation_info)
        was_isolating = is_isolating(resolve(current, today, self.configuration))
        if not was_isolating and is_isolating(
            resolve(candidate, today, self.configuration)
        ):
            return candidate.restarting_acknowledgement()
        return candidate

    def _base_info(self, today: GregorianDay) -> IsolationInfo:
        # evidence of an isolation that is no longer in force is not merged
        # with new evidence
        if is_isolating(self.logical_state(today)):
            return self.isolation_info
        return IsolationInfo()

    def set_isolation_info(
        self, isolation_info: IsolationInfo, today: Optional[GregorianDay] = None
    ) -> IsolationLogicalState:
        """
        Replaces the evidence and returns the logical state it leads to.
        """
        today = self._today(today)
        self.replace(self.new_isolation_state_info(isolation_info, today))
        return self.logical_state(today)

    def set_index_case_info(
        self, index_case_info: IndexCaseInfo, today: Optional[GregorianDay] = None
    ) -> IsolationLogicalState:
        today = self._today(today)
        info = replace(self._base_info(today), index_case_info=index_case_info)
        return self.set_isolation_info(info, today)

    def set_symptomatic_info(
        self,
        symptomatic_info: SymptomaticInfo,
        today: Optional[GregorianDay] = None,
        keep_test_info: bool = True,
    ) -> IsolationLogicalState:
        today = self._today(today)
        base = self._base_info(today)
        test_info = None
        if keep_test_info and base.index_case_info is not None:
            test_info = base.index_case_info.test_info
        index_case_info = IndexCaseInfo(
            symptomatic_info=symptomatic_info, test_info=test_info
        )
        return self.set_isolation_info(
            replace(base, index_case_info=index_case_info), today
        )

    def set_contact_case_info(
        self, contact_case_info: ContactCaseInfo, today: Optional[GregorianDay] = None
    ) -> IsolationLogicalState:
        today = self._today(today)
        info = replace(self._base_info(today), contact_case_info=contact_case_info)
        return self.set_isolation_info(info, today)

    def isolation_info_with_test(
        self,
        test_info: TestInfo,
        operation: StoreOperation,
        today: Optional[GregorianDay] = None,
    ) -> IsolationInfo:
        """
        The evidence that results from folding ``test_info`` into the record
        as ``operation`` says. Nothing is stored.
        """
        if operation is StoreOperation.ignore:
            return self.isolation_info
        today = self._today(today)
        stored_info = self.isolation_info
        if operation is StoreOperation.overwrite:
            base = self._base_info(today)
        else:
            base = stored_info
        stored_test = (
            stored_info.index_case_info.test_info
            if stored_info.index_case_info is not None
            else None
        )
        merged = _merge_test_info(stored_test, test_info, operation, today)
        symptomatic_info = (
            base.index_case_info.symptomatic_info
            if base.index_case_info is not None
            else None
        )
        index_case_info = IndexCaseInfo(
            symptomatic_info=symptomatic_info, test_info=merged
        )
        return replace(base, index_case_info=index_case_info)

    def set_test_info(
        self,
        test_info: TestInfo,
        operation: StoreOperation,
        today: Optional[GregorianDay] = None,
    ) -> IsolationLogicalState:
        """
        Folds ``test_info`` into the record as ``operation`` says.

        Parameters
        ----------
        test_info:
            the incoming test
        operation:
            the decision made for it by ``TestResultIsolationOperation``
        today:
            day the result is acknowledged, defaults to the current day
        """
        today = self._today(today)
        if operation is StoreOperation.ignore:
            logger.info(f"Ignoring {test_info.result.value} test result")
            return self.logical_state(today)
        return self.set_isolation_info(
            self.isolation_info_with_test(test_info, operation, today), today
        )

    def _set_flags(self, state_info: IsolationStateInfo) -> bool:
        if state_info == self._state_info:
            return False
        self.replace(state_info)
        return True

    def acknowledge_start_of_isolation(self) -> bool:
        if self._state_info is None:
            logger.info("Nothing to acknowledge the start of")
            return False
        return self._set_flags(self._state_info.acknowledging_start())

    def acknowledge_end_of_isolation(self) -> bool:
        if self._state_info is None:
            logger.info("Nothing to acknowledge the end of")
            return False
        return self._set_flags(self._state_info.acknowledging_end())

    def restart_isolation_acknowledgement(self) -> bool:
        if self._state_info is None:
            return False
        return self._set_flags(self._state_info.restarting_acknowledgement())

    def acknowledge(
        self, token: AcknowledgementToken, today: Optional[GregorianDay] = None
    ) -> bool:
        """
        Performs the acknowledgement ``token`` stands for. Returns whether it
        changed the record; tokens for an isolation that is no longer the
        current one change nothing.
        """
        current = isolation_of(self.logical_state(today))
        if current != token.isolation:
            logger.info("Ignoring acknowledgement for an isolation that is not current")
            return False
        if token.kind is AcknowledgementKind.start:
            return self.acknowledge_start_of_isolation()
        if token.kind is AcknowledgementKind.end:
            return self.acknowledge_end_of_isolation()
        raise InvalidAcknowledgementToken(f"Unknown acknowledgement {token.kind!r}")

    def delete(self):
        self.replace(None)

    def prune(self, today: Optional[GregorianDay] = None) -> bool:
        """
        Deletes the record once its isolation has been acknowledged as over
        and the housekeeping period has passed. Returns whether it did.
        """
        if self._state_info is None:
            return False
        if not self._state_info.has_acknowledged_end_of_isolation:
            return False
        if self.logical_state(today) != NotIsolating():
            return False
        logger.info("Deleting finished isolation record")
        self.delete()
        return True
