"""
Read model for the "my data" screen: what the app currently holds about the
user's tests, symptoms, contacts and isolation.
"""

from dataclasses import dataclass
from typing import Optional

from selfisolation.isolation.isolation_info import (
    ConfirmationStatus,
    IsolationStateInfo,
    TestKitType,
    TestResult,
)
from selfisolation.isolation.isolation_logical_state import (
    IsolationLogicalState,
    active_isolation,
    isolation_of,
)
from selfisolation.time import GregorianDay


@dataclass(frozen=True)
class TestResultDetails:
    __test__ = False

    result: TestResult
    day: GregorianDay
    test_kit_type: Optional[TestKitType]
    confirmation_status: Optional[ConfirmationStatus]
    confirmed_on_day: Optional[GregorianDay] = None


@dataclass(frozen=True)
class ExposureDetails:
    encounter_day: GregorianDay
    notification_day: GregorianDay


@dataclass(frozen=True)
class MyDataSummary:
    test_result_details: Optional[TestResultDetails] = None
    symptoms_onset_day: Optional[GregorianDay] = None
    exposure_details: Optional[ExposureDetails] = None
    last_day_of_isolation: Optional[GregorianDay] = None
    daily_testing_opt_in_day: Optional[GregorianDay] = None
    days_remaining_in_isolation: Optional[int] = None


def make_my_data(
    state_info: Optional[IsolationStateInfo],
    logical_state: IsolationLogicalState,
    today: Optional[GregorianDay] = None,
) -> MyDataSummary:
    """
    Summarises the stored record. ``days_remaining_in_isolation`` is only
    filled in while isolating and when ``today`` is given.
    """
    if state_info is None:
        return MyDataSummary()
    isolation_info = state_info.isolation_info
    test_result_details = None
    symptoms_onset_day = None
    index_case_info = isolation_info.index_case_info
    if index_case_info is not None:
        test_info = index_case_info.test_info
        if test_info is not None:
            # confirmation only means something for positive results
            confirmation_status = (
                test_info.confirmation_status if test_info.is_positive else None
            )
            test_result_details = TestResultDetails(
                result=test_info.result,
                day=test_info.assumed_test_end_day,
                test_kit_type=test_info.test_kit_type,
                confirmation_status=confirmation_status,
                confirmed_on_day=test_info.confirmed_on_day,
            )
        if index_case_info.symptomatic_info is not None:
            symptoms_onset_day = index_case_info.symptomatic_info.assumed_onset_day
    exposure_details = None
    daily_testing_opt_in_day = None
    contact_case_info = isolation_info.contact_case_info
    if contact_case_info is not None:
        exposure_details = ExposureDetails(
            encounter_day=contact_case_info.exposure_day,
            notification_day=contact_case_info.isolation_from_start_of_day,
        )
        daily_testing_opt_in_day = contact_case_info.opt_out_of_isolation_day
    isolation = isolation_of(logical_state)
    last_day_of_isolation = (
        isolation.until_start_of_day.advanced(by=-1) if isolation is not None else None
    )
    days_remaining_in_isolation = None
    active = active_isolation(logical_state)
    if active is not None and today is not None:
        days_remaining_in_isolation = active.days_remaining(today)
    return MyDataSummary(
        test_result_details=test_result_details,
        symptoms_onset_day=symptoms_onset_day,
        exposure_details=exposure_details,
        last_day_of_isolation=last_day_of_isolation,
        daily_testing_opt_in_day=daily_testing_opt_in_day,
        days_remaining_in_isolation=days_remaining_in_isolation,
    )
