import pytest

from selfisolation.configuration import CachedIsolationConfiguration
from selfisolation.exc import IsolationStorageError, StoredStateVersionError
from selfisolation.isolation import (
    AcknowledgementKind,
    AcknowledgementToken,
    ContactCaseInfo,
    IndexCaseInfo,
    Isolating,
    IsolationStateInfo,
    IsolationStateStore,
    NotIsolating,
    StoreOperation,
    SymptomaticInfo,
    TestInfo,
    TestKitType,
    TestResult,
    active_isolation,
)
from selfisolation.isolation.isolation_state_store import STORAGE_KEY
from selfisolation.storage import FileKeyValueStore, InMemoryKeyValueStore
from selfisolation.time import GregorianDay


def march(day):
    return GregorianDay(2021, 3, day)


class FailingKeyValueStore(InMemoryKeyValueStore):
    def __init__(self):
        super().__init__()
        self.fail = False

    def set(self, key, value):
        if self.fail:
            raise IsolationStorageError("disk full")
        super().set(key, value)


@pytest.fixture(name="store")
def make_store(key_value_store, configuration, date_provider):
    return IsolationStateStore(key_value_store, configuration, date_provider)


def positive(end_day, requires_confirmatory_test=False, received_on_day=None):
    return TestInfo(
        result=TestResult.positive,
        received_on_day=received_on_day or end_day,
        test_kit_type=TestKitType.rapid_result,
        requires_confirmatory_test=requires_confirmatory_test,
        test_end_day=end_day,
    )


def contact(exposure_day, from_day):
    return ContactCaseInfo(exposure_day=exposure_day, isolation_from_start_of_day=from_day)


class TestPersistence:
    def test__round_trip(self, tmp_path, configuration, date_provider):
        key_value_store = FileKeyValueStore(tmp_path)
        store = IsolationStateStore(key_value_store, configuration, date_provider)
        store.set_symptomatic_info(
            SymptomaticInfo(self_diagnosis_day=march(1), onset_day=march(1)), march(1)
        )
        store.set_test_info(
            positive(march(1), requires_confirmatory_test=True),
            StoreOperation.overwrite,
            march(1),
        )
        store.set_contact_case_info(contact(march(1), march(1)), march(1))
        store.acknowledge_start_of_isolation()
        reloaded = IsolationStateStore(key_value_store, configuration, date_provider)
        assert reloaded.isolation_state_info == store.isolation_state_info
        assert reloaded.isolation_state_info.has_acknowledged_start_of_isolation

    def test__unknown_version(self, key_value_store, configuration, date_provider):
        key_value_store.set(STORAGE_KEY, {"version": 7, STORAGE_KEY: {}})
        with pytest.raises(StoredStateVersionError):
            IsolationStateStore(key_value_store, configuration, date_provider)

    def test__failed_write_changes_nothing(self, configuration, date_provider):
        key_value_store = FailingKeyValueStore()
        store = IsolationStateStore(key_value_store, configuration, date_provider)
        store.set_contact_case_info(contact(march(1), march(1)), march(1))
        before = store.isolation_state_info
        published = []
        store.subscribe(published.append)
        key_value_store.fail = True
        with pytest.raises(IsolationStorageError):
            store.acknowledge_start_of_isolation()
        assert store.isolation_state_info == before
        assert published == []
        reloaded = IsolationStateStore(key_value_store, configuration, date_provider)
        assert reloaded.isolation_state_info == before

    def test__observers_see_new_values(self, store):
        published = []
        unsubscribe = store.subscribe(published.append)
        store.set_contact_case_info(contact(march(1), march(1)), march(1))
        unsubscribe()
        store.acknowledge_start_of_isolation()
        assert len(published) == 1
        assert published[0].isolation_info.contact_case_info == contact(march(1), march(1))

    def test__failing_observer_does_not_stop_others(self, store):
        published = []

        def broken(_):
            raise RuntimeError("broken observer")

        store.subscribe(broken)
        store.subscribe(published.append)
        store.set_contact_case_info(contact(march(1), march(1)), march(1))
        assert len(published) == 1

    def test__configuration_is_read_when_needed(self, key_value_store, date_provider):
        cached = CachedIsolationConfiguration()
        store = IsolationStateStore(key_value_store, cached, date_provider)
        assert store.configuration == cached.value


class TestEvidence:
    def test__new_evidence_merges_while_isolating(self, store):
        store.set_contact_case_info(contact(march(1), march(1)), march(1))
        store.acknowledge_start_of_isolation()
        state = store.set_symptomatic_info(
            SymptomaticInfo(self_diagnosis_day=march(3)), march(3)
        )
        info = store.isolation_info
        assert info.contact_case_info is not None
        assert info.index_case_info.symptomatic_info.self_diagnosis_day == march(3)
        assert state.start_acknowledged is True
        assert active_isolation(state).is_index_case

    def test__new_evidence_after_isolation_starts_fresh(self, store):
        store.set_contact_case_info(contact(march(1), march(1)), march(1))
        store.acknowledge_end_of_isolation()
        state = store.set_symptomatic_info(
            SymptomaticInfo(self_diagnosis_day=march(20)), march(20)
        )
        assert store.isolation_info.contact_case_info is None
        assert isinstance(state, Isolating)
        assert state.start_acknowledged is False
        assert state.end_acknowledged is False

    def test__symptoms_can_replace_test(self, store):
        store.set_test_info(positive(march(1)), StoreOperation.overwrite, march(1))
        store.set_symptomatic_info(
            SymptomaticInfo(self_diagnosis_day=march(2)), march(2), keep_test_info=False
        )
        assert store.isolation_info.index_case_info.test_info is None

    def test__set_index_case_info(self, store):
        index_case_info = IndexCaseInfo(
            symptomatic_info=SymptomaticInfo(self_diagnosis_day=march(1))
        )
        store.set_index_case_info(index_case_info, march(1))
        assert store.isolation_info.index_case_info == index_case_info


class TestStoreOperations:
    def test__ignore(self, store):
        store.set_test_info(positive(march(1)), StoreOperation.overwrite, march(1))
        before = store.isolation_state_info
        negative = TestInfo(result=TestResult.negative, received_on_day=march(2))
        store.set_test_info(negative, StoreOperation.ignore, march(2))
        assert store.isolation_state_info == before

    def test__confirm_keeps_stored_test(self, store):
        unconfirmed = positive(march(1), requires_confirmatory_test=True)
        store.set_test_info(unconfirmed, StoreOperation.overwrite, march(1))
        store.set_test_info(positive(march(3)), StoreOperation.confirm, march(3))
        test_info = store.isolation_info.index_case_info.test_info
        assert test_info.test_end_day == march(1)
        assert test_info.confirmed_on_day == march(3)
        assert test_info.is_confirmed_positive

    def test__overwrite_and_complete_with_negative(self, store):
        unconfirmed = positive(march(1), requires_confirmatory_test=True)
        store.set_test_info(unconfirmed, StoreOperation.overwrite, march(1))
        negative = TestInfo(
            result=TestResult.negative, received_on_day=march(3), test_end_day=march(2)
        )
        state = store.set_test_info(
            negative, StoreOperation.overwrite_and_complete, march(3)
        )
        test_info = store.isolation_info.index_case_info.test_info
        assert test_info.result is TestResult.negative
        assert test_info.confirmed_on_day == march(3)
        assert state == NotIsolating()

    def test__overwrite_and_complete_keeps_first_positive(self, store):
        store.set_test_info(positive(march(1)), StoreOperation.overwrite, march(1))
        store.set_test_info(
            positive(march(4)), StoreOperation.overwrite_and_complete, march(4)
        )
        test_info = store.isolation_info.index_case_info.test_info
        assert test_info.test_end_day == march(1)
        assert test_info.confirmed_on_day == march(4)
        assert active_isolation(store.logical_state(march(4))).until_start_of_day == march(12)


class TestAcknowledgement:
    def test__acknowledge_end_marks_start(self, store):
        store.set_contact_case_info(contact(march(1), march(1)), march(1))
        assert store.acknowledge_end_of_isolation() is True
        info = store.isolation_state_info
        assert info.has_acknowledged_start_of_isolation
        assert info.has_acknowledged_end_of_isolation
        assert store.acknowledge_end_of_isolation() is False

    def test__restart(self, store):
        store.set_contact_case_info(contact(march(1), march(1)), march(1))
        store.acknowledge_end_of_isolation()
        assert store.restart_isolation_acknowledgement() is True
        assert store.isolation_state_info == IsolationStateInfo(store.isolation_info)

    def test__nothing_to_acknowledge(self, store):
        assert store.acknowledge_start_of_isolation() is False
        assert store.acknowledge_end_of_isolation() is False

    def test__token(self, store):
        store.set_contact_case_info(contact(march(1), march(1)), march(1))
        isolation = active_isolation(store.logical_state(march(1)))
        token = AcknowledgementToken(AcknowledgementKind.start, isolation)
        assert store.acknowledge(token, march(1)) is True
        assert store.acknowledge(token, march(1)) is False

    def test__token_for_another_isolation(self, store):
        store.set_contact_case_info(contact(march(1), march(1)), march(1))
        isolation = active_isolation(store.logical_state(march(1)))
        store.set_test_info(positive(march(2)), StoreOperation.overwrite, march(2))
        token = AcknowledgementToken(AcknowledgementKind.start, isolation)
        assert store.acknowledge(token, march(2)) is False
        assert not store.isolation_state_info.has_acknowledged_start_of_isolation


class TestHousekeeping:
    def test__prune(self, store, key_value_store, configuration):
        store.set_contact_case_info(contact(march(1), march(1)), march(1))
        assert store.prune(march(20)) is False
        store.acknowledge_end_of_isolation()
        assert store.prune(march(20)) is False
        deletion_day = march(12).advanced(by=configuration.housekeeping_deletion_period)
        assert store.prune(deletion_day) is True
        assert store.isolation_state_info is None
        assert key_value_store.get(STORAGE_KEY) is None

    def test__delete(self, store, key_value_store):
        store.set_contact_case_info(contact(march(1), march(1)), march(1))
        store.delete()
        assert store.isolation_state_info is None
        assert store.logical_state(march(1)) == NotIsolating()
        assert key_value_store.get(STORAGE_KEY) is None
