"""
Shared pieces for check kinds: run context, score card, definition base.

Every kind starts a check at 100 and deducts a penalty per problem found,
floored at 0.
"""

import os
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from labaudit.config import TargetConfig
from labaudit.services.probe import HttpProbe
from labaudit.services.scoring.models import CheckResult, Finding, INFO, WARNING

CheckFn = Callable[[], Awaitable[CheckResult]]


@dataclass
class CheckContext:
    """What a check can observe during one run."""
    target: TargetConfig
    probe: Optional[HttpProbe] = None
    
    def project_path(self, relative: str) -> str:
        return os.path.join(self.target.project_root, relative)


class ScoreCard:
    """Accumulates deductions and findings for one check."""
    
    def __init__(self, name: str, start: int = 100):
        self.name = name
        self.score = start
        self.findings: List[Finding] = []
    
    def deduct(self, penalty: int, message: str, severity: str = WARNING):
        self.score -= penalty
        self.findings.append(Finding(message, severity))
    
    def note(self, message: str, severity: str = INFO):
        self.findings.append(Finding(message, severity))
    
    def fail(self, message: str, severity: str = WARNING):
        """Zero the check (nothing could be measured)."""
        self.score = 0
        self.findings.append(Finding(message, severity))
    
    def result(self) -> CheckResult:
        return CheckResult(name=self.name, score=max(0, min(100, self.score)), findings=list(self.findings))


class CheckDefinition(BaseModel):
    """Fields common to every check kind."""
    model_config = ConfigDict(extra="forbid")
    
    name: str
    weight: int = Field(..., ge=0)
    description: str = ""
    penalty: int = Field(10, ge=0)
    
    # Recommendation emitted when the check scores below recommend_below
    recommendation: Optional[str] = None
    priority: str = Field("high", pattern="^(critical|high|medium)$")
    recommend_below: int = Field(80, ge=0, le=100)
    
    def build(self, ctx: CheckContext) -> CheckFn:
        """Bind this definition to a run context as a no-argument coroutine."""
        async def run() -> CheckResult:
            return await self.evaluate(ctx)
        return run
    
    async def evaluate(self, ctx: CheckContext) -> CheckResult:
        raise NotImplementedError
