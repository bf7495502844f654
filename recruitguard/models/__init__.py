"""Data models for recruitguard."""

from recruitguard.models.resource import Resource, ResourceType, DeletionType, RiskLevel
from recruitguard.models.actor import Actor, ActorKind
from recruitguard.models.user import User, UserRole
from recruitguard.models.audit_event import AuditEvent, AuditAction, AuditResource, AuditClient
from recruitguard.models.approval import DeletionApproval, ApprovalStatus, ApprovalDecision
from recruitguard.models.snapshot import Snapshot

__all__ = [
    "Resource",
    "ResourceType",
    "DeletionType",
    "RiskLevel",
    "Actor",
    "ActorKind",
    "User",
    "UserRole",
    "AuditEvent",
    "AuditAction",
    "AuditResource",
    "AuditClient",
    "DeletionApproval",
    "ApprovalStatus",
    "ApprovalDecision",
    "Snapshot",
]
