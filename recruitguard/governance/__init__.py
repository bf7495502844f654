"""Deletion governance for recruitguard: policy, risk and the error taxonomy.

The orchestrator lives in `recruitguard.governance.orchestrator`.
"""

from recruitguard.governance.errors import (
    DeletionError,
    Forbidden,
    SelfApprovalForbidden,
    AlreadyPending,
    DuplicatePendingRequest,
    PersistenceError,
    SnapshotFailed,
    MutationFailed,
    AuditWriteError,
    NotFound,
    AlreadyDecided,
    ApprovalRequired,
    MfaRequired,
    InvalidDecision,
    ErasureNotConfirmed,
    AlreadyErased,
)
from recruitguard.governance.policy import DeletionPolicy
from recruitguard.governance.risk import RiskAssessment, RiskAssessor, classify_dependents

__all__ = [
    "DeletionError",
    "Forbidden",
    "SelfApprovalForbidden",
    "AlreadyPending",
    "DuplicatePendingRequest",
    "PersistenceError",
    "SnapshotFailed",
    "MutationFailed",
    "AuditWriteError",
    "NotFound",
    "AlreadyDecided",
    "ApprovalRequired",
    "MfaRequired",
    "InvalidDecision",
    "ErasureNotConfirmed",
    "AlreadyErased",
    "DeletionPolicy",
    "RiskAssessment",
    "RiskAssessor",
    "classify_dependents",
]
