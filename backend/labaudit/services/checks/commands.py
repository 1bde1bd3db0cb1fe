"""
Command checks - run a project tool (linter, dependency audit, test suite) and score its outcome.

Modes:
- exit_code: a non-zero exit status costs the penalty
- json_count: stdout is JSON; the number of problems found at count_path
  costs penalty_per_problem each, up to max_penalty
"""
import asyncio
import json
from typing import Any, List, Literal, Optional

from pydantic import Field

from labaudit.logger import logger
from labaudit.services.checks.base import CheckContext, CheckDefinition, ScoreCard
from labaudit.services.probe import NOT_FOUND, lookup
from labaudit.services.scoring.models import CheckResult


def count_problems(data: Any, count_path: str = "", sum_field: Optional[str] = None) -> int:
    """Extract a problem count from parsed tool output.
    
    Raises:
        ValueError: if the path is absent or does not hold a countable value
    """
    value = lookup(data, count_path) if count_path else data
    if value is NOT_FOUND:
        raise ValueError(f"path '{count_path}' not found in output")
    
    if isinstance(value, bool):
        raise ValueError(f"value at '{count_path}' is a boolean")
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, list):
        if sum_field:
            return sum(int(item.get(sum_field, 0)) for item in value if isinstance(item, dict))
        return len(value)
    if isinstance(value, dict):
        return sum(int(v) for v in value.values() if isinstance(v, (int, float)) and not isinstance(v, bool))
    
    raise ValueError(f"value at '{count_path}' is not countable")


class CommandCheck(CheckDefinition):
    kind: Literal["command"]
    command: List[str] = Field(..., min_length=1)
    mode: Literal["exit_code", "json_count"] = "exit_code"
    count_path: str = ""
    sum_field: Optional[str] = None
    penalty_per_problem: int = Field(5, ge=0)
    max_penalty: int = Field(100, ge=0)
    timeout: float = Field(300, gt=0)
    
    async def _execute(self, ctx: CheckContext) -> tuple[int, str, str]:
        proc = await asyncio.create_subprocess_exec(
            *self.command,
            cwd=ctx.target.project_root,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            raise
        return proc.returncode, stdout.decode(errors="replace"), stderr.decode(errors="replace")
    
    async def evaluate(self, ctx: CheckContext) -> CheckResult:
        card = ScoreCard(self.name)
        display = " ".join(self.command)
        
        try:
            returncode, stdout, stderr = await self._execute(ctx)
        except FileNotFoundError:
            card.fail(f"Command not found: {self.command[0]}")
            return card.result()
        except asyncio.TimeoutError:
            card.fail(f"Command timed out after {self.timeout:g}s: {display}")
            return card.result()
        
        logger.debug(f"{display} exited with {returncode}")
        
        if self.mode == "exit_code":
            if returncode != 0:
                tail = (stderr or stdout).strip().splitlines()[-1:] or [""]
                card.deduct(self.penalty, f"{display} exited with status {returncode} {tail[0]}".rstrip())
            return card.result()
        
        # json_count: tools such as `npm audit` exit non-zero when they find problems
        try:
            problems = count_problems(json.loads(stdout), self.count_path, self.sum_field)
        except ValueError as e:
            card.fail(f"Could not read output of {display}: {e}")
            return card.result()
        
        if problems:
            penalty = min(problems * self.penalty_per_problem, self.max_penalty)
            card.deduct(penalty, f"{display} reported {problems} problem(s)")
        return card.result()
