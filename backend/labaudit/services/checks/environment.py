"""
Environment checks - required secrets/variables must be set (values are never reported).
"""
import os
from typing import List, Literal

from pydantic import Field

from labaudit.services.checks.base import CheckContext, CheckDefinition, ScoreCard
from labaudit.services.scoring.models import CheckResult


class EnvironmentCheck(CheckDefinition):
    kind: Literal["env"]
    variables: List[str] = Field(..., min_length=1)
    
    async def evaluate(self, ctx: CheckContext) -> CheckResult:
        card = ScoreCard(self.name)
        for name in self.variables:
            if not os.environ.get(name, "").strip():
                card.deduct(self.penalty, f"Environment variable not set: {name}")
        return card.result()
