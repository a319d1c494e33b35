from .isolation_info import (
    ConfirmationStatus,
    ContactCaseInfo,
    IndexCaseInfo,
    IsolationInfo,
    IsolationStateInfo,
    RiskInfo,
    SymptomaticInfo,
    TestInfo,
    TestKitType,
    TestResult,
    VirologyTestResult,
)
from .isolation import (
    Isolation,
    IsolationContactCaseInfo,
    IsolationIndexCaseInfo,
    IsolationReason,
)
from .isolation_logical_state import (
    Isolate,
    IsolationFinishedButNotAcknowledged,
    IsolationLogicalState,
    IsolationState,
    Isolating,
    NoNeedToIsolate,
    NotIsolating,
    active_isolation,
    is_isolating,
    make_isolation_state,
    resolve,
)
from .test_result_operation import (
    StoreOperation,
    TestResultIsolationOperation,
    decide,
)
from .acknowledgement import (
    AcknowledgementKind,
    AcknowledgementMonitor,
    AcknowledgementToken,
    NeededForEnd,
    NeededForStart,
    NotNeeded,
    acknowledgement_state,
)
from .isolation_state_store import IsolationStateStore
from .isolation_state_manager import IsolationStateManager
from .test_result_metrics import TestResultMetricsHandler
from .my_data import MyDataSummary, make_my_data
from .isolation_context import (
    AcknowledgementCompletionActions,
    AskForSymptomsOnsetDay,
    DailyContactTestingDisabled,
    DailyContactTestingEnabled,
    HasNoTest,
    HasTest,
    IsolationContext,
    NeededToAcknowledge,
    TestResultNotNeeded,
)
