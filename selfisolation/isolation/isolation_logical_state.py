"""
Turns the persisted isolation record into the isolation that applies on a
given day.

The logical state is never stored. It is recomputed from the record, the day
and the configuration every time it is needed, so the same inputs always give
the same state.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from selfisolation.configuration import IsolationConfiguration
from selfisolation.isolation.isolation import (
    Isolation,
    IsolationContactCaseInfo,
    IsolationIndexCaseInfo,
    IsolationReason,
)
from selfisolation.isolation.isolation_info import (
    ContactCaseInfo,
    IndexCaseInfo,
    IsolationStateInfo,
    TestResult,
)
from selfisolation.time import GregorianDay

logger = logging.getLogger(__name__)

Window = Tuple[GregorianDay, GregorianDay]


@dataclass(frozen=True)
class NotIsolating:
    finished_isolation_that_we_have_not_deleted_yet: Optional[Isolation] = None


@dataclass(frozen=True)
class Isolating:
    isolation: Isolation
    end_acknowledged: bool
    start_acknowledged: bool


@dataclass(frozen=True)
class IsolationFinishedButNotAcknowledged:
    isolation: Isolation


IsolationLogicalState = Union[
    NotIsolating, Isolating, IsolationFinishedButNotAcknowledged
]


def is_isolating(state: IsolationLogicalState) -> bool:
    return isinstance(state, Isolating)


def active_isolation(state: IsolationLogicalState) -> Optional[Isolation]:
    """
    The isolation in force, if there is one.
    """
    if isinstance(state, Isolating):
        return state.isolation
    return None


def isolation_of(state: IsolationLogicalState) -> Optional[Isolation]:
    """
    The isolation the state refers to, whether or not it is still in force.
    """
    if isinstance(state, (Isolating, IsolationFinishedButNotAcknowledged)):
        return state.isolation
    if isinstance(state, NotIsolating):
        return state.finished_isolation_that_we_have_not_deleted_yet
    raise TypeError(f"Unexpected isolation logical state {state!r}")


def _is_valid(window: Window) -> bool:
    return window[0] < window[1]


def index_case_window(
    info: IndexCaseInfo, configuration: IsolationConfiguration
) -> Optional[Window]:
    """
    The isolation window the index case evidence asks for, if any.

    Symptoms isolate from the (assumed) onset day. A positive test isolates
    from its end day. A negative test taken on or after the onset day ends the
    symptomatic isolation on the day the result was received. Void and plod
    results do not isolate.
    """
    windows: List[Window] = []
    symptomatic_info = info.symptomatic_info
    test_info = info.test_info
    if symptomatic_info is not None:
        if symptomatic_info.onset_day is not None:
            until = symptomatic_info.onset_day.advanced(
                by=configuration.index_case_since_self_diagnosis_onset
            )
        else:
            until = symptomatic_info.self_diagnosis_day.advanced(
                by=configuration.index_case_since_self_diagnosis_unknown_onset
            )
        if (
            test_info is not None
            and test_info.result is TestResult.negative
            and test_info.assumed_test_end_day >= symptomatic_info.assumed_onset_day
        ):
            until = min(until, test_info.received_on_day)
        windows.append((symptomatic_info.assumed_onset_day, until))
    if test_info is not None and test_info.result is TestResult.positive:
        test_end_day = test_info.assumed_test_end_day
        windows.append(
            (
                test_end_day,
                test_end_day.advanced(
                    by=configuration.index_case_since_npex_day_no_self_diagnosis
                ),
            )
        )
    windows = [window for window in windows if _is_valid(window)]
    if not windows:
        return None
    return (
        min(window[0] for window in windows),
        max(window[1] for window in windows),
    )


def contact_case_window(
    info: ContactCaseInfo, today: GregorianDay, configuration: IsolationConfiguration
) -> Optional[Window]:
    """
    The isolation window a risky contact asks for, truncated at the opt-out
    day once that day has been reached.
    """
    until = info.exposure_day.advanced(by=configuration.contact_case)
    opt_out_day = info.opt_out_of_isolation_day
    if opt_out_day is not None and opt_out_day <= today:
        until = min(until, opt_out_day)
    window = (info.isolation_from_start_of_day, until)
    if not _is_valid(window):
        return None
    return window


def resolve_isolation(
    state_info: IsolationStateInfo,
    today: GregorianDay,
    configuration: IsolationConfiguration,
) -> Optional[Isolation]:
    """
    The isolation period the record describes, or None if it describes none.
    Windows from different reasons are not added up: the isolation starts
    with the earliest one and lasts until the latest one ends, capped at
    ``max_isolation`` days.
    """
    isolation_info = state_info.isolation_info
    windows: List[Window] = []
    index_reason = None
    contact_reason = None
    if isolation_info.index_case_info is not None:
        window = index_case_window(isolation_info.index_case_info, configuration)
        if window is not None:
            windows.append(window)
            index_reason = IsolationIndexCaseInfo.from_index_case_info(
                isolation_info.index_case_info
            )
    if isolation_info.contact_case_info is not None:
        window = contact_case_window(
            isolation_info.contact_case_info, today, configuration
        )
        if window is not None:
            windows.append(window)
            contact_reason = IsolationContactCaseInfo.from_contact_case_info(
                isolation_info.contact_case_info
            )
    if not windows:
        return None
    from_day = min(window[0] for window in windows)
    until_start_of_day = min(
        max(window[1] for window in windows),
        from_day.advanced(by=configuration.max_isolation),
    )
    if from_day >= until_start_of_day:
        logger.warning(
            f"Discarding malformed isolation from {from_day} until {until_start_of_day}"
        )
        return None
    return Isolation(
        from_day=from_day,
        until_start_of_day=until_start_of_day,
        reason=IsolationReason(
            index_case_info=index_reason, contact_case_info=contact_reason
        ),
    )


def resolve(
    state_info: Optional[IsolationStateInfo],
    today: GregorianDay,
    configuration: IsolationConfiguration,
) -> IsolationLogicalState:
    """
    Computes the isolation logical state on ``today``.

    Parameters
    ----------
    state_info:
        the persisted isolation record, if there is one
    today:
        the current day in the user's timezone
    configuration:
        the isolation period lengths to apply

    Returns
    -------
    One of NotIsolating, Isolating or IsolationFinishedButNotAcknowledged.
    """
    if state_info is None:
        return NotIsolating()
    isolation = resolve_isolation(state_info, today, configuration)
    if isolation is None:
        return NotIsolating()
    if today < isolation.until_start_of_day:
        return Isolating(
            isolation,
            end_acknowledged=state_info.has_acknowledged_end_of_isolation,
            start_acknowledged=state_info.has_acknowledged_start_of_isolation,
        )
    if not state_info.has_acknowledged_end_of_isolation:
        return IsolationFinishedButNotAcknowledged(isolation)
    deletion_day = isolation.until_start_of_day.advanced(
        by=configuration.housekeeping_deletion_period
    )
    if today < deletion_day:
        return NotIsolating(finished_isolation_that_we_have_not_deleted_yet=isolation)
    return NotIsolating()


@dataclass(frozen=True)
class NoNeedToIsolate:
    end_day: Optional[GregorianDay] = None


@dataclass(frozen=True)
class Isolate:
    isolation: Isolation


IsolationState = Union[NoNeedToIsolate, Isolate]


def make_isolation_state(logical_state: IsolationLogicalState) -> IsolationState:
    """
    Reduces a logical state to what the user is told: isolate or not.
    """
    if isinstance(logical_state, Isolating):
        return Isolate(logical_state.isolation)
    if isinstance(logical_state, IsolationFinishedButNotAcknowledged):
        return NoNeedToIsolate(end_day=logical_state.isolation.until_start_of_day)
    if isinstance(logical_state, NotIsolating):
        finished = logical_state.finished_isolation_that_we_have_not_deleted_yet
        return NoNeedToIsolate(
            end_day=finished.until_start_of_day if finished is not None else None
        )
    raise TypeError(f"Unexpected isolation logical state {logical_state!r}")
