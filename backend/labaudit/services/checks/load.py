"""
Load checks - fire a burst of concurrent probes at one endpoint.

Rate-limited answers are a side effect of the burst itself, so they are
counted apart and left out of the score. The burst uses its own circuit
breaker, so its 429s never pause the other probes of the run.
"""
import asyncio
import math
from typing import List, Literal, Optional

from pydantic import Field

from labaudit.services.checks.base import CheckContext, CheckDefinition, ScoreCard
from labaudit.services.probe import Expectation, ProbeSpec, Verdict
from labaudit.services.scoring.engine import round_half_up
from labaudit.services.scoring.models import CheckResult, INFO, WARNING


def percentile(values: List[float], pct: float) -> float:
    """Nearest-rank percentile."""
    ordered = sorted(values)
    rank = max(1, math.ceil(pct / 100 * len(ordered)))
    return ordered[rank - 1]


class LoadCheck(CheckDefinition):
    kind: Literal["load"]
    path: str
    method: str = "GET"
    requests: int = Field(20, ge=1, le=500)
    requires_auth: bool = False
    statuses: Optional[List[int]] = None
    auth: bool = False
    max_latency_ms: Optional[float] = Field(None, gt=0)
    
    def _spec(self) -> ProbeSpec:
        return ProbeSpec(
            method=self.method.upper(),
            path=self.path,
            expectation=Expectation(
                requires_auth=self.requires_auth,
                statuses=frozenset(self.statuses) if self.statuses is not None else None,
            ),
            auth=self.auth,
        )
    
    async def evaluate(self, ctx: CheckContext) -> CheckResult:
        card = ScoreCard(self.name)
        spec = self._spec()
        
        burst = ctx.probe.isolated()
        results = await asyncio.gather(*(burst.probe(spec, max_retries=0) for _ in range(self.requests)))
        
        rate_limited = sum(1 for r in results if r.verdict == Verdict.RATE_LIMITED)
        unreachable = sum(1 for r in results if r.verdict == Verdict.UNVERIFIED)
        conclusive = [r for r in results if not r.inconclusive]
        
        if rate_limited:
            card.note(f"{rate_limited}/{self.requests} requests were rate limited (429) and excluded from the score")
        if unreachable:
            card.note(f"{unreachable}/{self.requests} requests got no answer", WARNING)
        
        if not conclusive:
            card.fail(f"No conclusive answer from {spec.label} in {self.requests} requests")
            return card.result()
        
        matched = sum(1 for r in conclusive if r.matched)
        card.score = round_half_up(100 * matched / len(conclusive))
        if matched < len(conclusive):
            card.note(f"{len(conclusive) - matched}/{len(conclusive)} answers from {spec.label} did not match", WARNING)
        
        p95 = percentile([r.elapsed_ms for r in conclusive], 95)
        card.note(f"{spec.label}: p95 latency {p95:.0f}ms over {len(conclusive)} answers", INFO)
        if self.max_latency_ms is not None and p95 > self.max_latency_ms:
            card.deduct(self.penalty, f"p95 latency {p95:.0f}ms exceeds {self.max_latency_ms:g}ms")
        
        return card.result()
