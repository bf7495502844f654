"""Error taxonomy for the deletion core.

Each error carries a stable `code` for callers and a specific, human-readable
message: every denial and failure must say exactly what went wrong.
"""

from typing import Optional

from recruitguard.models.constants import (
    MSG_ADMIN_ONLY,
    MSG_ALREADY_PENDING,
    MSG_SNAPSHOT_FAILED,
    MSG_APPROVAL_REQUIRED,
    MSG_ERASURE_NOT_CONFIRMED,
)


class DeletionError(Exception):
    """Base class for deletion-core errors."""

    code = "deletion_error"
    default_message = "Deletion failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Forbidden(DeletionError):
    """A non-admin (or anonymous) actor attempted a destructive operation."""
    code = "forbidden"
    default_message = MSG_ADMIN_ONLY


class SelfApprovalForbidden(Forbidden):
    code = "self_approval_forbidden"
    default_message = "The requester of a deletion cannot decide their own approval"


class AlreadyPending(DeletionError):
    code = "already_pending"
    default_message = MSG_ALREADY_PENDING


class DuplicatePendingRequest(AlreadyPending):
    """The store's single-pending uniqueness constraint rejected an insert."""


class PersistenceError(DeletionError):
    code = "persistence_error"
    default_message = "The write could not be durably committed"


class SnapshotFailed(DeletionError):
    code = "snapshot_failed"
    default_message = MSG_SNAPSHOT_FAILED


class MutationFailed(DeletionError):
    code = "mutation_failed"
    default_message = "The resource could not be deleted"


class AuditWriteError(DeletionError):
    code = "audit_write_failed"
    default_message = "The audit event could not be written"


class NotFound(DeletionError):
    code = "not_found"
    default_message = "Not found"


class AlreadyDecided(DeletionError):
    code = "already_decided"
    default_message = "This deletion approval has already been decided"


class ApprovalRequired(DeletionError):
    code = "approval_required"
    default_message = MSG_APPROVAL_REQUIRED


class MfaRequired(DeletionError):
    code = "mfa_required"
    default_message = "Approving a critical-risk deletion requires verified MFA"


class InvalidDecision(DeletionError):
    code = "invalid_decision"
    default_message = "Invalid approval decision"


class ErasureNotConfirmed(DeletionError):
    """Personal-data erasure was requested without the confirmation phrase or a reason."""
    code = "erasure_not_confirmed"
    default_message = MSG_ERASURE_NOT_CONFIRMED


class AlreadyErased(DeletionError):
    code = "already_erased"
    default_message = "This candidate's personal data has already been erased"
