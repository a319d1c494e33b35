import datetime
from dataclasses import dataclass
from typing import Optional

from selfisolation.isolation.isolation_info import (
    ContactCaseInfo,
    IndexCaseInfo,
    TestKitType,
)
from selfisolation.time import GregorianDay


@dataclass(frozen=True)
class IsolationIndexCaseInfo:
    """
    What an isolation knows about the index case evidence behind it.
    """

    has_positive_test_result: bool
    test_kit_type: Optional[TestKitType]
    is_self_diagnosed: bool
    is_pending_confirmation: bool

    @classmethod
    def from_index_case_info(cls, info: IndexCaseInfo) -> "IsolationIndexCaseInfo":
        test_info = info.test_info
        return cls(
            has_positive_test_result=test_info is not None and test_info.is_positive,
            test_kit_type=test_info.test_kit_type if test_info is not None else None,
            is_self_diagnosed=info.is_self_diagnosed,
            is_pending_confirmation=test_info is not None
            and test_info.is_pending_confirmation,
        )


@dataclass(frozen=True)
class IsolationContactCaseInfo:
    opt_out_of_isolation_day: Optional[GregorianDay] = None

    @classmethod
    def from_contact_case_info(
        cls, info: ContactCaseInfo
    ) -> "IsolationContactCaseInfo":
        return cls(opt_out_of_isolation_day=info.opt_out_of_isolation_day)


@dataclass(frozen=True)
class IsolationReason:
    index_case_info: Optional[IsolationIndexCaseInfo] = None
    contact_case_info: Optional[IsolationContactCaseInfo] = None


@dataclass(frozen=True)
class Isolation:
    """
    An isolation period: from the start of ``from_day`` up to, not including,
    ``until_start_of_day``.
    """

    from_day: GregorianDay
    until_start_of_day: GregorianDay
    reason: IsolationReason

    @property
    def is_index_case(self) -> bool:
        return self.reason.index_case_info is not None

    @property
    def is_contact_case(self) -> bool:
        return self.reason.contact_case_info is not None

    @property
    def is_contact_case_only(self) -> bool:
        return self.is_contact_case and not self.is_index_case

    @property
    def is_self_diagnosed(self) -> bool:
        return self.is_index_case and self.reason.index_case_info.is_self_diagnosed

    @property
    def has_positive_test_result(self) -> bool:
        return (
            self.is_index_case and self.reason.index_case_info.has_positive_test_result
        )

    @property
    def has_confirmed_positive_test_result(self) -> bool:
        return (
            self.has_positive_test_result
            and not self.reason.index_case_info.is_pending_confirmation
        )

    @property
    def duration(self) -> int:
        return self.until_start_of_day - self.from_day

    def end_date(self, timezone: datetime.tzinfo) -> datetime.datetime:
        return self.until_start_of_day.start_date(timezone)

    def days_remaining(self, today: GregorianDay) -> int:
        return max(self.until_start_of_day - today, 0)
