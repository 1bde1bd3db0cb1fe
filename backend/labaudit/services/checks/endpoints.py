"""
Endpoint checks - probe a list of endpoints and score the verdicts.
"""
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from labaudit.logger import logger
from labaudit.services.checks.base import CheckContext, CheckDefinition, ScoreCard
from labaudit.services.probe import Expectation, ProbeResult, ProbeSpec, Verdict
from labaudit.services.scoring.models import CRITICAL, CheckResult, WARNING


class ProbeDefinition(BaseModel):
    """One endpoint expectation as written in an audit file."""
    model_config = ConfigDict(extra="forbid")
    
    path: str
    method: str = "GET"
    requires_auth: bool = False
    statuses: Optional[List[int]] = None
    json_fields: List[str] = Field(default_factory=list)
    json_equals: Dict[str, Any] = Field(default_factory=dict)
    body_contains: Optional[str] = None
    headers_present: List[str] = Field(default_factory=list)
    headers_absent: List[str] = Field(default_factory=list)
    body: Optional[Any] = None
    auth: bool = False
    penalty: Optional[int] = Field(None, ge=0)
    description: str = ""
    
    def expectation(self) -> Expectation:
        return Expectation(
            requires_auth=self.requires_auth,
            statuses=frozenset(self.statuses) if self.statuses is not None else None,
            json_fields=tuple(self.json_fields),
            json_equals=tuple(self.json_equals.items()),
            body_contains=self.body_contains,
            headers_present=tuple(self.headers_present),
            headers_absent=tuple(self.headers_absent),
        )
    
    def to_spec(self) -> ProbeSpec:
        return ProbeSpec(
            method=self.method.upper(),
            path=self.path,
            expectation=self.expectation(),
            body=self.body,
            auth=self.auth,
            description=self.description,
        )


def describe(result: ProbeResult, authenticated: bool = False) -> tuple[str, str]:
    """Finding message and severity for a non-matching probe."""
    label = result.label
    verdict = result.verdict
    
    if verdict == Verdict.VULNERABLE:
        who = "to a restricted token" if authenticated else "without authentication"
        return f"{label} answered HTTP {result.status_code} {who}", CRITICAL
    if verdict == Verdict.UNEXPECTEDLY_PROTECTED:
        return f"{label} requires authentication (HTTP {result.status_code}) but should be public", WARNING
    if verdict == Verdict.MISSING:
        return f"{label} not found (HTTP 404)", WARNING
    if verdict == Verdict.CONTENT_MISMATCH:
        return f"{label}: {result.detail}", WARNING
    if verdict in (Verdict.RATE_LIMITED, Verdict.UNVERIFIED):
        return f"Could not verify {label}: {result.detail}", WARNING
    return f"{label} answered unexpected HTTP {result.status_code}", WARNING


class EndpointsCheck(CheckDefinition):
    """Probe endpoints; every probe that does not match its expectation costs its penalty."""
    kind: Literal["endpoints"]
    probes: List[ProbeDefinition] = Field(..., min_length=1)
    
    async def evaluate(self, ctx: CheckContext) -> CheckResult:
        card = ScoreCard(self.name)
        vulnerable = 0
        
        for probe_def in self.probes:
            result = await ctx.probe.probe(probe_def.to_spec())
            if result.matched:
                continue
            
            message, severity = describe(result, authenticated=probe_def.auth)
            if result.verdict == Verdict.VULNERABLE:
                vulnerable += 1
            penalty = probe_def.penalty if probe_def.penalty is not None else self.penalty
            card.deduct(penalty, message, severity)
        
        if vulnerable:
            logger.warning(f"{self.name}: {vulnerable} endpoint(s) reachable without the required access")
        
        return card.result()
