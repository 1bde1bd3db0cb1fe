"""
Weighted Audit Harness - run named checks, isolate failures, aggregate a report.

A check is a (name, weight, fn) triple where fn is a no-argument coroutine
function returning a CheckResult. Checks run sequentially by default, or with
a bounded number in flight; results always keep the declared order.
"""
import asyncio
import time
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Dict, List, Optional

from labaudit.config import TargetConfig
from labaudit.logger import logger
from labaudit.services.checks.base import CheckFn
from labaudit.services.scoring.engine import RecommendationRule, ScoringEngine
from labaudit.services.scoring.models import AuditReport, CheckResult, CRITICAL, Finding
from labaudit.services.scoring.tiers import DEFAULT_TIERS, TierTable
from labaudit.services.scoring.weights import WeightTable


@dataclass(frozen=True)
class AuditCheck:
    """A named, weighted check."""
    name: str
    weight: int
    fn: CheckFn


class WeightedAuditHarness:
    """Runs checks against one target and builds the audit report."""

    def __init__(
        self,
        target: TargetConfig,
        tiers: TierTable = DEFAULT_TIERS,
        pass_threshold: int = 70,
        max_critical: Optional[int] = None,
        concurrency: Optional[int] = None
    ):
        self.target = target
        self.engine = ScoringEngine(tiers)
        self.pass_threshold = pass_threshold
        self.max_critical = max_critical
        self.concurrency = max(1, concurrency if concurrency is not None else target.concurrency)

    async def _run_one(self, check: AuditCheck) -> CheckResult:
        """Run a single check; an exception becomes a zero score with an error finding."""
        started = time.perf_counter()
        try:
            result = await check.fn()
            if result.name != check.name:
                result = replace(result, name=check.name)
        except Exception as e:
            logger.exception(f"Check {check.name} raised: {e}")
            result = CheckResult(
                name=check.name,
                score=0,
                findings=[Finding(f"Check raised {e.__class__.__name__}: {e}", CRITICAL)],
                error=str(e) or e.__class__.__name__
            )

        duration_ms = round((time.perf_counter() - started) * 1000, 1)
        logger.info(f"Check {check.name}: {result.score}/100 ({duration_ms}ms)")
        return replace(result, duration_ms=duration_ms)

    async def run_checks(self, checks: List[AuditCheck]) -> List[CheckResult]:
        """Run every check, in declared order when sequential."""
        if self.concurrency == 1:
            results = []
            for check in checks:
                results.append(await self._run_one(check))
            return results

        semaphore = asyncio.Semaphore(self.concurrency)

        async def bounded(check: AuditCheck) -> CheckResult:
            async with semaphore:
                return await self._run_one(check)

        return list(await asyncio.gather(*(bounded(c) for c in checks)))

    async def run(
        self,
        checks: List[AuditCheck],
        audit: str = "adhoc",
        title: str = "",
        category: str = "general",
        rules: Optional[Dict[str, RecommendationRule]] = None
    ) -> AuditReport:
        """
        Run all checks and aggregate them.

        Args:
            checks: Ordered (name, weight, fn) checks
            audit: Audit identifier used for the report
            title: Human-readable audit title
            category: Report category (reports/<category>/)
            rules: Recommendations keyed by check name

        Returns:
            AuditReport with overall score, tier, and per-check results
        """
        weights = WeightTable(((c.name, c.weight) for c in checks), source=audit)
        started_at = datetime.now(timezone.utc)

        logger.info(
            f"Starting audit {audit} against {self.target.base_url} "
            f"({len(checks)} checks, concurrency={self.concurrency})"
        )
        results = await self.run_checks(checks)

        outcome = self.engine.score(
            results,
            weights,
            pass_threshold=self.pass_threshold,
            max_critical=self.max_critical,
            rules=rules
        )

        completed_at = datetime.now(timezone.utc)
        return AuditReport(
            audit=audit,
            title=title or audit,
            category=category,
            target=self.target.base_url,
            overall_score=outcome.overall,
            status_tier=outcome.tier,
            passed=outcome.passed,
            pass_threshold=self.pass_threshold,
            results=results,
            weights=weights.as_dict(),
            recommendations=outcome.recommendations,
            started_at=started_at,
            completed_at=completed_at,
            duration_seconds=round((completed_at - started_at).total_seconds(), 2)
        )
