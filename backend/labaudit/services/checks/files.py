"""
Project structure checks - files on disk and declared dependencies.

A missing file is a missing-feature signal, not an error.
"""
import json
import os
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from labaudit.services.checks.base import CheckContext, CheckDefinition, ScoreCard
from labaudit.services.scoring.models import CheckResult, WARNING


class FileRequirement(BaseModel):
    model_config = ConfigDict(extra="forbid")
    
    path: str
    contains: Optional[str] = None
    penalty: Optional[int] = Field(None, ge=0)


class FilesCheck(CheckDefinition):
    """Files that must exist under the project root, optionally with some text."""
    kind: Literal["files"]
    files: List[FileRequirement] = Field(..., min_length=1)
    
    async def evaluate(self, ctx: CheckContext) -> CheckResult:
        card = ScoreCard(self.name)
        
        for req in self.files:
            penalty = req.penalty if req.penalty is not None else self.penalty
            full_path = ctx.project_path(req.path)
            
            if not os.path.isfile(full_path):
                card.deduct(penalty, f"Missing file: {req.path}")
                continue
            
            if req.contains:
                with open(full_path, "r", encoding="utf-8", errors="replace") as f:
                    content = f.read()
                if req.contains not in content:
                    card.deduct(penalty, f"'{req.contains}' not found in {req.path}")
        
        return card.result()


class DependenciesCheck(CheckDefinition):
    """Packages that must be declared in package.json."""
    kind: Literal["dependencies"]
    manifest: str = "package.json"
    packages: List[str] = Field(..., min_length=1)
    
    def _declared(self, ctx: CheckContext) -> tuple[set, Optional[str]]:
        path = ctx.project_path(self.manifest)
        try:
            with open(path, "r", encoding="utf-8") as f:
                manifest = json.load(f)
        except FileNotFoundError:
            return set(), f"Manifest not found: {self.manifest}"
        except ValueError as e:
            return set(), f"Manifest {self.manifest} is not valid JSON: {e}"
        
        declared = set()
        for section in ("dependencies", "devDependencies"):
            declared.update((manifest.get(section) or {}).keys())
        return declared, None
    
    async def evaluate(self, ctx: CheckContext) -> CheckResult:
        card = ScoreCard(self.name)
        declared, problem = self._declared(ctx)
        if problem:
            card.note(problem, WARNING)
        
        for package in self.packages:
            if package not in declared:
                card.deduct(self.penalty, f"Dependency not declared: {package}")
        
        return card.result()
