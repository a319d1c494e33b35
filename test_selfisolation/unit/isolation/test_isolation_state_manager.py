import pytest

from selfisolation.configuration import CachedIsolationConfiguration
from selfisolation.isolation import (
    ContactCaseInfo,
    IsolationFinishedButNotAcknowledged,
    IsolationStateManager,
    IsolationStateStore,
    Isolating,
    NotIsolating,
    SymptomaticInfo,
)
from selfisolation.records import MetricEvent
from selfisolation.time import GregorianDay


@pytest.fixture(name="store")
def make_store(key_value_store, configuration, date_provider):
    return IsolationStateStore(key_value_store, configuration, date_provider)


@pytest.fixture(name="manager")
def make_manager(store):
    return IsolationStateManager(store)


def add_contact(store, today):
    store.set_contact_case_info(
        ContactCaseInfo(exposure_day=today, isolation_from_start_of_day=today)
    )


class TestIsolationStateManager:
    def test__follows_the_store(self, manager, store, today):
        published = []
        manager.subscribe(published.append)
        assert manager.state == NotIsolating()
        add_contact(store, today)
        assert isinstance(manager.state, Isolating)
        assert published == [manager.state]

    def test__equal_states_are_published_once(self, manager, store, today):
        published = []
        manager.subscribe(published.append)
        add_contact(store, today)
        store.set_contact_case_info(store.isolation_info.contact_case_info)
        manager.on_application_became_active()
        manager.tick()
        assert len(published) == 1

    def test__tick_notices_new_day(self, manager, store, today, date_provider):
        add_contact(store, today)
        date_provider.advance(hours=6)
        assert isinstance(manager.tick(), Isolating)
        date_provider.advance(days=11)
        assert manager.tick() == IsolationFinishedButNotAcknowledged(
            manager.state.isolation
        )

    def test__record_metrics(self, manager, store, today, recorder):
        store.set_symptomatic_info(SymptomaticInfo(self_diagnosis_day=today))
        add_contact(store, today)
        manager.record_metrics(recorder)
        assert recorder.count(MetricEvent.is_isolating_background_tick) == 1
        assert recorder.count(MetricEvent.is_isolating_for_self_diagnosed_background_tick) == 1
        assert recorder.count(MetricEvent.is_isolating_for_had_risky_contact_background_tick) == 1
        assert recorder.count(MetricEvent.is_isolating_for_tested_positive_background_tick) == 0

    def test__record_metrics_after_isolation(self, manager, store, recorder):
        add_contact(store, GregorianDay(2021, 2, 1))
        manager.record_metrics(recorder)
        assert recorder.count(MetricEvent.has_finished_isolation_background_tick) == 1
        assert recorder.count(MetricEvent.is_isolating_background_tick) == 0

    def test__tick_notices_new_configuration(
        self, key_value_store, date_provider, today
    ):
        payload = {
            "england": {
                "maxIsolation": 21,
                "contactCase": 2,
                "indexCaseSinceSelfDiagnosisOnset": 11,
                "indexCaseSinceSelfDiagnosisUnknownOnset": 9,
                "housekeepingDeletionPeriod": 14,
                "indexCaseSinceNPEXDayNoSelfDiagnosis": 11,
            }
        }
        cached = CachedIsolationConfiguration(fetcher=lambda: payload)
        store = IsolationStateStore(key_value_store, cached, date_provider)
        manager = IsolationStateManager(store)
        add_contact(store, today)
        assert manager.tick().isolation.until_start_of_day == today.advanced(by=11)
        published = []
        manager.subscribe(published.append)
        assert cached.update() is True
        state = manager.tick()
        assert state.isolation.until_start_of_day == today.advanced(by=2)
        assert published == [state]
