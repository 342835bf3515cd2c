"""Composite health score, risk tier, and RAG status.

Pure policy functions.  Two independent threshold schemes live here and
must not be confused:

  - risk tier of the overall score: >= 85 low, >= 65 medium, else high
  - RAG colouring: (90, 75) for domain cards, (85, 65) for the overall
    ring
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from ..common.types import Percent, Score
from .models import (
    ClientHealth,
    ContentDistribution,
    DomainKey,
    DomainScore,
    EdgeManagement,
    RagStatus,
    RiskLevel,
    SoftwareUpdateCompliance,
    SoftwareUpdateDeployment,
)
from .normalize import clamp, round_half_up

RISK_LOW_MIN = 85
RISK_MEDIUM_MIN = 65

CARD_RAG_THRESHOLDS: tuple[float, float] = (90.0, 75.0)
OVERALL_RAG_THRESHOLDS: tuple[float, float] = (85.0, 65.0)


def domain_scores(
    clients: ClientHealth,
    content: ContentDistribution,
    compliance: SoftwareUpdateCompliance,
    deployment: SoftwareUpdateDeployment,
    edge: EdgeManagement,
) -> tuple[DomainScore, ...]:
    """One 0-100 score per domain, in fixed order, with card RAG."""
    values = (
        (DomainKey.CLIENTS, clients.client_health_percent),
        (DomainKey.CONTENT, content.dp_health_percent),
        (DomainKey.COMPLIANCE, compliance.compliance_percent),
        (DomainKey.DEPLOYMENTS, deployment.deployment_success_rate),
        (DomainKey.EDGE, round_half_up(100.0 - edge.vulnerable_percent)),
    )
    return tuple(
        DomainScore(domain=key, score=Percent(value), rag=rag_status(value))
        for key, value in values
    )


def overall_health_score(scores: Sequence[float]) -> Score:
    """Unweighted mean, rounded half-up to an integer, clamped to [0, 100]."""
    if not scores:
        return Score(0)
    mean = sum(scores) / len(scores)
    return Score(int(clamp(math.floor(mean + 0.5))))


def risk_tier(score: float) -> RiskLevel:
    if score >= RISK_LOW_MIN:
        return RiskLevel.LOW
    if score >= RISK_MEDIUM_MIN:
        return RiskLevel.MEDIUM
    return RiskLevel.HIGH


def rag_status(
    value: float, thresholds: tuple[float, float] = CARD_RAG_THRESHOLDS
) -> RagStatus:
    green, amber = thresholds
    if value >= green:
        return RagStatus.GREEN
    if value >= amber:
        return RagStatus.AMBER
    return RagStatus.RED


__all__ = [
    "RISK_LOW_MIN",
    "RISK_MEDIUM_MIN",
    "CARD_RAG_THRESHOLDS",
    "OVERALL_RAG_THRESHOLDS",
    "domain_scores",
    "overall_health_score",
    "risk_tier",
    "rag_status",
]
