"""Constants for recruitguard.

This module centralizes the thresholds and default values used by the deletion core.
"""

from recruitguard.models.resource import RiskLevel


# Risk assessment: active dependents above which a deletion escalates
HIGH_RISK_MIN_DEPENDENTS = 1
CRITICAL_RISK_MIN_DEPENDENTS = 11  # more than 10 active dependents
DEFAULT_RISK_LEVEL = RiskLevel.MEDIUM

# Approvals
MFA_REQUIRED_RISK_LEVEL = RiskLevel.CRITICAL

# Audit log
AUDIT_GENESIS_HASH = "0" * 64
AUDIT_APPEND_MAX_ATTEMPTS = 3
AUDIT_DEFAULT_PAGE_SIZE = 100
AUDIT_MAX_PAGE_SIZE = 1000

# User-visible messages
MSG_ADMIN_ONLY = "Only admins can delete resources"
MSG_ALREADY_PENDING = "A pending deletion approval already exists for this resource"
MSG_SNAPSHOT_FAILED = "Failed to create snapshot"
MSG_APPROVAL_REQUIRED = "Valid approval required for hard-delete"
MSG_NOT_AUTHENTICATED = "User not authenticated"

# Personal-data erasure
ERASURE_CONFIRMATION_PHRASE = "CONFIRM-PERSONAL-DATA-ERASURE"
ERASURE_LEGAL_BASIS = "GDPR Art. 17 / LGPD Art. 18, VI"
ERASED_NAME = "[PERSONAL DATA REMOVED]"
ERASED_EMAIL_DOMAIN = "erased.invalid"
ERASED_FEEDBACK_CONTENT = "[CONTENT REMOVED]"
MSG_ERASURE_NOT_CONFIRMED = f"Erasure must be confirmed with {ERASURE_CONFIRMATION_PHRASE} and a reason"
