"""Health snapshot domain — descriptors, normalization, trends, scoring, findings."""

from .findings import generate_findings  # noqa: F401 – re-export for convenience
from .scoring import (  # noqa: F401
    domain_scores,
    overall_health_score,
    risk_tier,
)
