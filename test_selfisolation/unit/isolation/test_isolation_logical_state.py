import pytest

from selfisolation.configuration import IsolationConfiguration
from selfisolation.isolation import (
    ContactCaseInfo,
    IndexCaseInfo,
    Isolate,
    Isolating,
    IsolationFinishedButNotAcknowledged,
    IsolationInfo,
    IsolationStateInfo,
    NoNeedToIsolate,
    NotIsolating,
    SymptomaticInfo,
    TestInfo,
    TestResult,
    active_isolation,
    make_isolation_state,
    resolve,
)
from selfisolation.isolation.isolation_logical_state import resolve_isolation
from selfisolation.time import GregorianDay


def march(day):
    return GregorianDay(2021, 3, day)


def state_info(index_case_info=None, contact_case_info=None, start=False, end=False):
    return IsolationStateInfo(
        isolation_info=IsolationInfo(
            index_case_info=index_case_info, contact_case_info=contact_case_info
        ),
        has_acknowledged_start_of_isolation=start,
        has_acknowledged_end_of_isolation=end,
    )


def symptoms(self_diagnosis_day, onset_day=None, test_info=None):
    return IndexCaseInfo(
        symptomatic_info=SymptomaticInfo(
            self_diagnosis_day=self_diagnosis_day, onset_day=onset_day
        ),
        test_info=test_info,
    )


def make_test_info(result, end_day, received_on_day=None):
    return TestInfo(
        result=result,
        received_on_day=received_on_day or end_day,
        test_end_day=end_day,
    )


def contact(exposure_day, from_day, opt_out_day=None):
    return ContactCaseInfo(
        exposure_day=exposure_day,
        isolation_from_start_of_day=from_day,
        opt_out_of_isolation_day=opt_out_day,
    )


class TestIndexCase:
    def test__no_record(self, configuration):
        assert resolve(None, march(1), configuration) == NotIsolating()

    def test__symptoms_with_onset_day(self, configuration):
        info = state_info(symptoms(march(5), onset_day=march(3)), start=True)
        state = resolve(info, march(5), configuration)
        assert isinstance(state, Isolating)
        assert state.isolation.from_day == march(3)
        assert state.isolation.until_start_of_day == march(14)
        assert state.start_acknowledged is True
        assert state.end_acknowledged is False
        assert state.isolation.is_self_diagnosed
        assert not state.isolation.is_contact_case

    def test__symptoms_with_unknown_onset(self, configuration):
        isolation = resolve_isolation(
            state_info(symptoms(march(5))), march(5), configuration
        )
        assert isolation.from_day == march(3)
        assert isolation.until_start_of_day == march(14)

    def test__positive_test(self, configuration):
        info = state_info(
            IndexCaseInfo(test_info=make_test_info(TestResult.positive, march(1), march(2)))
        )
        isolation = resolve_isolation(info, march(2), configuration)
        assert isolation.from_day == march(1)
        assert isolation.until_start_of_day == march(12)
        assert isolation.has_positive_test_result
        assert isolation.has_confirmed_positive_test_result

    def test__negative_test_after_onset_ends_symptomatic_isolation(self, configuration):
        negative = make_test_info(TestResult.negative, march(6), received_on_day=march(7))
        info = state_info(symptoms(march(5), onset_day=march(4), test_info=negative))
        assert isinstance(resolve(info, march(6), configuration), Isolating)
        isolation = resolve_isolation(info, march(6), configuration)
        assert isolation.until_start_of_day == march(7)
        assert resolve(info, march(7), configuration) == (
            IsolationFinishedButNotAcknowledged(isolation)
        )

    def test__negative_test_before_onset_is_ignored(self, configuration):
        negative = make_test_info(TestResult.negative, march(2))
        info = state_info(symptoms(march(5), onset_day=march(4), test_info=negative))
        isolation = resolve_isolation(info, march(6), configuration)
        assert isolation.until_start_of_day == march(15)

    @pytest.mark.parametrize("result", [TestResult.void, TestResult.plod])
    def test__void_and_plod_do_not_isolate(self, configuration, result):
        info = state_info(IndexCaseInfo(test_info=make_test_info(result, march(1))))
        assert resolve(info, march(1), configuration) == NotIsolating()

    def test__onset_reported_after_self_diagnosis(self, configuration):
        # the onset day is taken as given, even when it follows the diagnosis
        info = state_info(symptoms(march(5), onset_day=march(7)))
        isolation = resolve_isolation(info, march(5), configuration)
        assert isolation.from_day == march(7)
        assert isolation.until_start_of_day == march(18)
        assert resolve(info, march(5), configuration) == Isolating(
            isolation, end_acknowledged=False, start_acknowledged=False
        )


class TestCombination:
    def test__latest_end_wins(self, configuration):
        info = state_info(
            symptoms(march(5), onset_day=march(3)),
            contact(march(1), march(2)),
        )
        isolation = resolve_isolation(info, march(5), configuration)
        assert isolation.from_day == march(2)
        assert isolation.until_start_of_day == march(14)
        assert isolation.is_index_case
        assert isolation.is_contact_case
        assert not isolation.is_contact_case_only

    def test__capped_at_max_isolation(self, configuration):
        info = state_info(
            IndexCaseInfo(test_info=make_test_info(TestResult.positive, march(20))),
            contact(march(1), march(1)),
        )
        isolation = resolve_isolation(info, march(20), configuration)
        assert isolation.from_day == march(1)
        assert isolation.until_start_of_day == march(22)
        assert isolation.duration == configuration.max_isolation

    def test__empty_window_is_not_an_isolation(self, configuration):
        # isolation would start on the day it ends
        info = state_info(
            contact_case_info=contact(march(1), march(12)), start=True, end=True
        )
        assert resolve(info, march(12), configuration) == NotIsolating()
        assert resolve(info, march(2), configuration) == NotIsolating()


class TestContactCase:
    def test__contact_case_only(self, configuration):
        info = state_info(contact_case_info=contact(march(1), march(2)))
        state = resolve(info, march(2), configuration)
        assert state.isolation.until_start_of_day == march(12)
        assert state.isolation.is_contact_case_only

    def test__opt_out_ends_isolation(self):
        configuration = IsolationConfiguration(contact_case=10)
        info = state_info(
            contact_case_info=contact(march(1), march(1), opt_out_day=march(4)),
            start=True,
        )
        before = resolve_isolation(info, march(3), configuration)
        assert before.until_start_of_day == march(11)
        isolation = resolve_isolation(info, march(4), configuration)
        assert isolation.from_day == march(1)
        assert isolation.until_start_of_day == march(4)
        assert isolation.reason.contact_case_info.opt_out_of_isolation_day == march(4)
        assert resolve(info, march(4), configuration) == (
            IsolationFinishedButNotAcknowledged(isolation)
        )

    def test__opt_out_does_not_shorten_index_case(self, configuration):
        info = state_info(
            IndexCaseInfo(test_info=make_test_info(TestResult.positive, march(2))),
            contact(march(1), march(1), opt_out_day=march(4)),
        )
        isolation = resolve_isolation(info, march(5), configuration)
        assert isolation.until_start_of_day == march(13)


class TestEndOfIsolation:
    def test__window_boundary(self, configuration):
        info = state_info(contact_case_info=contact(march(1), march(2)), start=True)
        isolation = resolve_isolation(info, march(2), configuration)
        last_day = isolation.until_start_of_day.advanced(by=-1)
        assert isinstance(resolve(info, last_day, configuration), Isolating)
        assert resolve(info, isolation.until_start_of_day, configuration) == (
            IsolationFinishedButNotAcknowledged(isolation)
        )

    def test__acknowledged_end_is_kept_until_housekeeping(self, configuration):
        info = state_info(
            contact_case_info=contact(march(1), march(2)), start=True, end=True
        )
        isolation = resolve_isolation(info, march(2), configuration)
        deletion_day = isolation.until_start_of_day.advanced(
            by=configuration.housekeeping_deletion_period
        )
        assert resolve(info, march(12), configuration) == NotIsolating(isolation)
        assert resolve(info, deletion_day.advanced(by=-1), configuration) == (
            NotIsolating(isolation)
        )
        assert resolve(info, deletion_day, configuration) == NotIsolating()

    def test__acknowledged_end_while_isolating(self, configuration):
        info = state_info(
            contact_case_info=contact(march(1), march(2)), start=True, end=True
        )
        state = resolve(info, march(5), configuration)
        assert state.end_acknowledged is True


def test__resolve_is_idempotent(configuration):
    info = state_info(
        symptoms(march(5), test_info=make_test_info(TestResult.positive, march(6))),
        contact(march(1), march(2)),
        start=True,
    )
    for today in (march(1), march(5), march(16), march(30)):
        assert resolve(info, today, configuration) == resolve(
            info, today, configuration
        )


def test__isolation_state_for_display(configuration):
    info = state_info(contact_case_info=contact(march(1), march(2)))
    isolating = resolve(info, march(3), configuration)
    assert make_isolation_state(isolating) == Isolate(active_isolation(isolating))
    finished = resolve(info, march(12), configuration)
    assert make_isolation_state(finished) == NoNeedToIsolate(end_day=march(12))
    assert make_isolation_state(NotIsolating()) == NoNeedToIsolate()
