from liqo.application.use_cases.group_import_use_cases import (
    GroupImportProcessor,
    GroupImportRow,
    GroupSpreadsheet,
    ImportResult,
    RowFailure,
)
from liqo.application.use_cases.group_lifecycle_use_cases import (
    BulkFailure,
    BulkResult,
    EditCandidates,
    GroupLifecycleManager,
    SoftDeleteResult,
)
from liqo.application.use_cases.membership_use_cases import (
    AttachProposal,
    MembershipChange,
    MembershipReconciler,
)

__all__ = [
    "AttachProposal",
    "BulkFailure",
    "BulkResult",
    "EditCandidates",
    "GroupImportProcessor",
    "GroupImportRow",
    "GroupLifecycleManager",
    "GroupSpreadsheet",
    "ImportResult",
    "MembershipChange",
    "MembershipReconciler",
    "RowFailure",
    "SoftDeleteResult",
]
