"""Threshold rules that turn normalized records into findings.

Rules are independent and evaluated in a fixed order; every rule that
fires contributes exactly one Finding.  There is no suppression and no
deduplication.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from .models import (
    ClientHealth,
    ContentDistribution,
    Finding,
    FindingDomain,
    Severity,
    SoftwareUpdateCompliance,
    SoftwareUpdateDeployment,
)


@dataclass(frozen=True)
class FindingInputs:
    """The records the finding rules read from."""

    clients: ClientHealth
    content: ContentDistribution
    compliance: SoftwareUpdateCompliance
    deployment: SoftwareUpdateDeployment


@dataclass(frozen=True)
class FindingRule:
    """Fires when ``count(inputs) > 0``."""

    domain: FindingDomain
    severity: Severity
    count: Callable[[FindingInputs], int]
    singular: str
    plural: str

    def evaluate(self, inputs: FindingInputs) -> Finding | None:
        n = self.count(inputs)
        if n <= 0:
            return None
        template = self.singular if n == 1 else self.plural
        return Finding(
            finding=template.format(n=n), severity=self.severity, domain=self.domain
        )


FINDING_RULES: tuple[FindingRule, ...] = (
    FindingRule(
        domain=FindingDomain.CLIENTS,
        severity=Severity.MEDIUM,
        count=lambda i: i.clients.inactive_clients,
        singular="{n} device inactive for more than 30 days",
        plural="{n} devices inactive for more than 30 days",
    ),
    FindingRule(
        domain=FindingDomain.UPDATES,
        severity=Severity.HIGH,
        count=lambda i: i.compliance.last_scan_distribution.over_7d,
        singular="{n} device not scanned for updates in over 7 days",
        plural="{n} devices not scanned for updates in over 7 days",
    ),
    FindingRule(
        domain=FindingDomain.CONTENT,
        severity=Severity.MEDIUM,
        count=lambda i: i.content.distributed_failed,
        singular="{n} content distribution failed",
        plural="{n} content distributions failed",
    ),
    FindingRule(
        domain=FindingDomain.DEPLOYMENTS,
        severity=Severity.MEDIUM,
        count=lambda i: i.deployment.pending_restarts,
        singular="{n} device pending restart",
        plural="{n} devices pending restart",
    ),
)


def generate_findings(
    inputs: FindingInputs,
    rules: tuple[FindingRule, ...] = FINDING_RULES,
) -> tuple[Finding, ...]:
    """Evaluate *rules* in order; return every finding that fired."""
    findings = []
    for r in rules:
        finding = r.evaluate(inputs)
        if finding is not None:
            findings.append(finding)
    return tuple(findings)


__all__ = ["FindingInputs", "FindingRule", "FINDING_RULES", "generate_findings"]
