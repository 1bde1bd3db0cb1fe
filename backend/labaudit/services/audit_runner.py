"""
Audit Runner - Main orchestrator for audits.

Loads the definition, opens one HTTP client and one circuit breaker for the
run, binds the checks and hands them to the harness.
"""
from typing import Optional

import httpx

from labaudit.config import TargetConfig
from labaudit.logger import logger
from labaudit.services.checks.base import CheckContext
from labaudit.services.circuit_breaker import RunCircuitBreaker
from labaudit.services.definitions import AuditDefinition
from labaudit.services.harness import WeightedAuditHarness
from labaudit.services.probe import HttpProbe
from labaudit.services.scoring.models import AuditReport


class AuditRunner:
    """Orchestrates a complete audit run."""

    def __init__(self, target: TargetConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.target = target
        self.transport = transport
        # Breaker of the current (or last) run
        self.breaker: Optional[RunCircuitBreaker] = None

    async def run(self, definition: AuditDefinition, concurrency: Optional[int] = None) -> AuditReport:
        """
        Run one audit against the configured target.

        Args:
            definition: The audit to run
            concurrency: Checks in flight (defaults to the definition's value)

        Returns:
            AuditReport with scores and findings
        """
        harness = WeightedAuditHarness(
            self.target,
            tiers=definition.tier_table(),
            pass_threshold=definition.pass_threshold,
            max_critical=definition.max_critical,
            concurrency=concurrency or definition.concurrency
        )

        async with httpx.AsyncClient(
            transport=self.transport,
            follow_redirects=False,
            timeout=self.target.timeout
        ) as client:
            self.breaker = RunCircuitBreaker(self.target.base_url)
            ctx = CheckContext(target=self.target, probe=HttpProbe(client, self.target, breaker=self.breaker))
            report = await harness.run(
                definition.build_checks(ctx),
                audit=definition.name,
                title=definition.title,
                category=definition.category,
                rules=definition.recommendation_rules()
            )

        logger.info(
            f"Audit {definition.name} finished: {report.overall_score}/100 "
            f"({report.status_tier}, {'passed' if report.passed else 'failed'})"
        )
        return report
