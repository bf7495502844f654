"""Deletion risk assessment.

Risk is the blast radius of a deletion: the number of active (non-deleted) records
that depend on the resource. The result is advisory input to policy.
"""

import logging
from dataclasses import dataclass

from recruitguard.database.resource_repository import ResourceRepository
from recruitguard.models.constants import (
    CRITICAL_RISK_MIN_DEPENDENTS,
    HIGH_RISK_MIN_DEPENDENTS,
    DEFAULT_RISK_LEVEL,
)
from recruitguard.models.resource import ResourceType, RiskLevel

logger = logging.getLogger(__name__)

RISK_REASONS = {
    RiskLevel.MEDIUM.value: "Low-risk deletion",
    RiskLevel.HIGH.value: "Resource has active dependencies",
    RiskLevel.CRITICAL.value: "Resource has many active dependencies (>10)",
}
UNASSESSED_REASON = "Unable to assess risk"


@dataclass
class RiskAssessment:
    """Result of a risk assessment."""
    risk_level: RiskLevel
    reason: str
    dependent_count: int = 0
    assessed: bool = True


def classify_dependents(dependent_count: int) -> RiskLevel:
    """Map an active dependent count to a risk level.

    0 -> medium (baseline), 1-10 -> high, more than 10 -> critical.
    """
    if dependent_count >= CRITICAL_RISK_MIN_DEPENDENTS:
        return RiskLevel.CRITICAL
    if dependent_count >= HIGH_RISK_MIN_DEPENDENTS:
        return RiskLevel.HIGH
    return RiskLevel.MEDIUM


class RiskAssessor:
    """Classifies pending deletions by dependent blast radius."""

    def __init__(self, resources: ResourceRepository):
        self.resources = resources

    def assess(self, resource_type: ResourceType, resource_id: str) -> RiskAssessment:
        """Assess a deletion.

        If the dependent count cannot be determined the assessment errs toward caution
        without blocking: it returns `medium` (never lower) and logs a warning.
        """
        try:
            count = self.resources.count_active_dependents(resource_type, resource_id)
        except Exception as e:
            logger.warning(
                f"Failed to assess deletion risk for {resource_type} {resource_id}: "
                f"{type(e).__name__}: {str(e)}"
            )
            return RiskAssessment(
                risk_level=DEFAULT_RISK_LEVEL,
                reason=UNASSESSED_REASON,
                assessed=False,
            )

        level = classify_dependents(count)
        logger.debug(f"Deletion risk for {resource_type} {resource_id}: {level.value} ({count} dependents)")
        return RiskAssessment(risk_level=level, reason=RISK_REASONS[level.value], dependent_count=count)
