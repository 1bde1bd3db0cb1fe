"""
Audit definitions - weight tables, tiers and checks loaded from YAML.

A definition is either a built-in name (labaudit/audits/<name>.yaml) or a
path to a YAML file.
"""
import os
from typing import Annotated, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationError, field_validator, model_validator

from labaudit.errors import AuditDefinitionError
from labaudit.services.checks.base import CheckContext
from labaudit.services.checks.commands import CommandCheck
from labaudit.services.checks.endpoints import EndpointsCheck
from labaudit.services.checks.environment import EnvironmentCheck
from labaudit.services.checks.files import DependenciesCheck, FilesCheck
from labaudit.services.checks.load import LoadCheck
from labaudit.services.harness import AuditCheck
from labaudit.services.scoring.engine import RecommendationRule
from labaudit.services.scoring.tiers import DEFAULT_TIERS, TierTable
from labaudit.services.scoring.weights import WeightTable

AUDITS_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "audits")

AnyCheck = Annotated[
    Union[EndpointsCheck, FilesCheck, DependenciesCheck, EnvironmentCheck, CommandCheck, LoadCheck],
    Field(discriminator="kind")
]


class TierDefinition(BaseModel):
    model_config = ConfigDict(extra="forbid")

    min: int = Field(..., ge=0, le=100)
    label: str


class AuditDefinition(BaseModel):
    """One audit: its checks, weights, tiers and pass rule."""
    model_config = ConfigDict(extra="forbid")

    name: str
    title: str = ""
    category: str = "general"
    description: str = ""
    pass_threshold: int = Field(70, ge=0, le=100)
    max_critical: Optional[int] = Field(None, ge=0)
    concurrency: int = Field(1, ge=1)
    tiers: Optional[List[TierDefinition]] = None
    checks: List[AnyCheck] = Field(..., min_length=1)

    _source: str = PrivateAttr("<memory>")

    @property
    def source(self) -> str:
        return self._source

    @field_validator("category")
    @classmethod
    def _safe_category(cls, value: str) -> str:
        if not value or "/" in value or "\\" in value or value.startswith("."):
            raise ValueError(f"invalid category: {value!r}")
        return value

    @model_validator(mode="after")
    def _unique_names(self) -> "AuditDefinition":
        seen = set()
        for check in self.checks:
            if check.name in seen:
                raise ValueError(f"duplicate check name: {check.name}")
            seen.add(check.name)
        return self

    def tier_table(self) -> TierTable:
        if not self.tiers:
            return DEFAULT_TIERS
        return TierTable(((t.min, t.label) for t in self.tiers), source=self.source)

    def weight_table(self) -> WeightTable:
        return WeightTable(((c.name, c.weight) for c in self.checks), source=self.source)

    def recommendation_rules(self) -> Dict[str, RecommendationRule]:
        return {
            c.name: RecommendationRule(message=c.recommendation, priority=c.priority, below=c.recommend_below)
            for c in self.checks
            if c.recommendation
        }

    def build_checks(self, ctx: CheckContext) -> List[AuditCheck]:
        """Bind every check to the run context."""
        return [AuditCheck(name=c.name, weight=c.weight, fn=c.build(ctx)) for c in self.checks]


def parse_definition(data: dict, source: str = "<memory>") -> AuditDefinition:
    """Validate a parsed YAML document."""
    if not isinstance(data, dict):
        raise AuditDefinitionError(source, "expected a mapping at the top level")
    try:
        definition = AuditDefinition.model_validate(data)
    except ValidationError as e:
        raise AuditDefinitionError(source, str(e)) from e

    definition._source = source
    # Weight and tier tables validate themselves
    definition.weight_table()
    definition.tier_table()
    return definition


def builtin_names() -> List[str]:
    return sorted(
        name[:-5] for name in os.listdir(AUDITS_DIR)
        if name.endswith(".yaml")
    )


def resolve_path(name_or_path: str) -> str:
    """Map a built-in audit name or a file path to a YAML path."""
    if os.path.isfile(name_or_path):
        return name_or_path
    builtin = os.path.join(AUDITS_DIR, f"{name_or_path}.yaml")
    if os.path.isfile(builtin):
        return builtin
    raise AuditDefinitionError(
        name_or_path,
        f"unknown audit (built-in audits: {', '.join(builtin_names())})"
    )


def load_definition(name_or_path: str) -> AuditDefinition:
    """Load and validate an audit definition."""
    path = resolve_path(name_or_path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise AuditDefinitionError(path, f"invalid YAML: {e}") from e
    return parse_definition(data, source=path)


def load_builtin_definitions() -> List[AuditDefinition]:
    return [load_definition(name) for name in builtin_names()]
