"""
Evidence the isolation engine works from: symptom reports, test results and
risky contacts, plus the persisted record that merges them.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from selfisolation.time import GregorianDay
from selfisolation.utils import read_day, read_optional_day, write_optional_day

# days before self-diagnosis that symptoms are assumed to have started
ASSUMED_ONSET_DAYS_BEFORE_SELF_DIAGNOSIS = 2


class TestResult(Enum):
    __test__ = False

    positive = "positive"
    plod = "plod"
    negative = "negative"
    void = "void"


class TestKitType(Enum):
    __test__ = False

    lab_result = "lab_result"
    rapid_result = "rapid_result"
    rapid_self_reported = "rapid_self_reported"


@dataclass(frozen=True)
class VirologyTestResult:
    """
    A test result as handed over by the test result source.
    """

    test_result: TestResult
    test_kit_type: Optional[TestKitType] = None
    end_day: Optional[GregorianDay] = None
    requires_confirmatory_test: bool = False
    confirmatory_day_limit: Optional[int] = None


@dataclass(frozen=True)
class RiskInfo:
    """
    An exposure-notification contact that was considered risky.
    """

    day: GregorianDay
    risk_score: float = 0.0
    is_considered_risky: bool = True


@dataclass(frozen=True)
class SymptomaticInfo:
    self_diagnosis_day: GregorianDay
    onset_day: Optional[GregorianDay] = None

    @property
    def assumed_onset_day(self) -> GregorianDay:
        if self.onset_day is not None:
            return self.onset_day
        return self.self_diagnosis_day.advanced(
            by=-ASSUMED_ONSET_DAYS_BEFORE_SELF_DIAGNOSIS
        )

    def to_dict(self) -> dict:
        return {
            "self_diagnosis_day": str(self.self_diagnosis_day),
            "onset_day": write_optional_day(self.onset_day),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SymptomaticInfo":
        return cls(
            self_diagnosis_day=read_day(data["self_diagnosis_day"]),
            onset_day=read_optional_day(data.get("onset_day")),
        )


class ConfirmationStatus(Enum):
    pending = "pending"
    confirmed = "confirmed"
    not_required = "not_required"


@dataclass(frozen=True)
class TestInfo:
    __test__ = False

    result: TestResult
    received_on_day: GregorianDay
    test_kit_type: Optional[TestKitType] = None
    requires_confirmatory_test: bool = False
    test_end_day: Optional[GregorianDay] = None
    confirmatory_day_limit: Optional[int] = None
    confirmed_on_day: Optional[GregorianDay] = None

    @property
    def assumed_test_end_day(self) -> GregorianDay:
        if self.test_end_day is not None:
            return self.test_end_day
        return self.received_on_day

    @property
    def confirmation_status(self) -> ConfirmationStatus:
        if self.confirmed_on_day is not None:
            return ConfirmationStatus.confirmed
        if self.requires_confirmatory_test:
            return ConfirmationStatus.pending
        return ConfirmationStatus.not_required

    @property
    def is_positive(self) -> bool:
        return self.result is TestResult.positive

    @property
    def is_confirmed_positive(self) -> bool:
        return self.is_positive and (
            not self.requires_confirmatory_test or self.confirmed_on_day is not None
        )

    @property
    def is_pending_confirmation(self) -> bool:
        return self.is_positive and not self.is_confirmed_positive

    def confirmed(self, on_day: GregorianDay) -> "TestInfo":
        return replace(self, confirmed_on_day=on_day)

    @classmethod
    def from_virology_test_result(
        cls, result: VirologyTestResult, received_on_day: GregorianDay
    ) -> "TestInfo":
        return cls(
            result=result.test_result,
            received_on_day=received_on_day,
            test_kit_type=result.test_kit_type,
            requires_confirmatory_test=result.requires_confirmatory_test,
            test_end_day=result.end_day,
            confirmatory_day_limit=result.confirmatory_day_limit,
        )

    def to_dict(self) -> dict:
        return {
            "result": self.result.value,
            "received_on_day": str(self.received_on_day),
            "test_kit_type": self.test_kit_type.value if self.test_kit_type else None,
            "requires_confirmatory_test": self.requires_confirmatory_test,
            "test_end_day": write_optional_day(self.test_end_day),
            "confirmatory_day_limit": self.confirmatory_day_limit,
            "confirmed_on_day": write_optional_day(self.confirmed_on_day),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TestInfo":
        test_kit_type = data.get("test_kit_type")
        return cls(
            result=TestResult(data["result"]),
            received_on_day=read_day(data["received_on_day"]),
            test_kit_type=TestKitType(test_kit_type) if test_kit_type else None,
            requires_confirmatory_test=bool(
                data.get("requires_confirmatory_test", False)
            ),
            test_end_day=read_optional_day(data.get("test_end_day")),
            confirmatory_day_limit=data.get("confirmatory_day_limit"),
            confirmed_on_day=read_optional_day(data.get("confirmed_on_day")),
        )


@dataclass(frozen=True)
class ContactCaseInfo:
    exposure_day: GregorianDay
    isolation_from_start_of_day: GregorianDay
    opt_out_of_isolation_day: Optional[GregorianDay] = None

    def to_dict(self) -> dict:
        return {
            "exposure_day": str(self.exposure_day),
            "isolation_from_start_of_day": str(self.isolation_from_start_of_day),
            "opt_out_of_isolation_day": write_optional_day(
                self.opt_out_of_isolation_day
            ),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ContactCaseInfo":
        return cls(
            exposure_day=read_day(data["exposure_day"]),
            isolation_from_start_of_day=read_day(data["isolation_from_start_of_day"]),
            opt_out_of_isolation_day=read_optional_day(
                data.get("opt_out_of_isolation_day")
            ),
        )


@dataclass(frozen=True)
class IndexCaseInfo:
    symptomatic_info: Optional[SymptomaticInfo] = None
    test_info: Optional[TestInfo] = None

    def __post_init__(self):
        if self.symptomatic_info is None and self.test_info is None:
            raise ValueError(
                "An index case needs either symptomatic info or test info"
            )

    @property
    def assumed_test_end_day(self) -> Optional[GregorianDay]:
        if self.test_info is None:
            return None
        return self.test_info.assumed_test_end_day

    @property
    def is_self_diagnosed(self) -> bool:
        return self.symptomatic_info is not None

    def to_dict(self) -> dict:
        return {
            "symptomatic_info": self.symptomatic_info.to_dict()
            if self.symptomatic_info
            else None,
            "test_info": self.test_info.to_dict() if self.test_info else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "IndexCaseInfo":
        symptomatic_info = data.get("symptomatic_info")
        test_info = data.get("test_info")
        return cls(
            symptomatic_info=SymptomaticInfo.from_dict(symptomatic_info)
            if symptomatic_info
            else None,
            test_info=TestInfo.from_dict(test_info) if test_info else None,
        )


@dataclass(frozen=True)
class IsolationInfo:
    index_case_info: Optional[IndexCaseInfo] = None
    contact_case_info: Optional[ContactCaseInfo] = None

    @property
    def is_empty(self) -> bool:
        return self.index_case_info is None and self.contact_case_info is None

    def to_dict(self) -> dict:
        return {
            "index_case_info": self.index_case_info.to_dict()
            if self.index_case_info
            else None,
            "contact_case_info": self.contact_case_info.to_dict()
            if self.contact_case_info
            else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "IsolationInfo":
        index_case_info = data.get("index_case_info")
        contact_case_info = data.get("contact_case_info")
        return cls(
            index_case_info=IndexCaseInfo.from_dict(index_case_info)
            if index_case_info
            else None,
            contact_case_info=ContactCaseInfo.from_dict(contact_case_info)
            if contact_case_info
            else None,
        )


@dataclass(frozen=True)
class IsolationStateInfo:
    """
    The persisted isolation record: all the evidence plus what the user has
    acknowledged about it.
    """

    isolation_info: IsolationInfo
    has_acknowledged_start_of_isolation: bool = False
    has_acknowledged_end_of_isolation: bool = False

    def acknowledging_start(self) -> "IsolationStateInfo":
        return replace(self, has_acknowledged_start_of_isolation=True)

    def acknowledging_end(self) -> "IsolationStateInfo":
        # nobody needs to be told an isolation started once it has ended
        return replace(
            self,
            has_acknowledged_start_of_isolation=True,
            has_acknowledged_end_of_isolation=True,
        )

    def restarting_acknowledgement(self) -> "IsolationStateInfo":
        return replace(
            self,
            has_acknowledged_start_of_isolation=False,
            has_acknowledged_end_of_isolation=False,
        )

    def to_dict(self) -> dict:
        return {
            "isolation_info": self.isolation_info.to_dict(),
            "has_acknowledged_start_of_isolation": self.has_acknowledged_start_of_isolation,
            "has_acknowledged_end_of_isolation": self.has_acknowledged_end_of_isolation,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "IsolationStateInfo":
        return cls(
            isolation_info=IsolationInfo.from_dict(data.get("isolation_info") or {}),
            has_acknowledged_start_of_isolation=bool(
                data.get("has_acknowledged_start_of_isolation", False)
            ),
            has_acknowledged_end_of_isolation=bool(
                data.get("has_acknowledged_end_of_isolation", False)
            ),
        )
