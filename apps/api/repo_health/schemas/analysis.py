from __future__ import annotations

import math
from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

InsightType = Literal["strength", "weakness", "suggestion", "security"]
Priority = Literal["low", "medium", "high", "critical"]
ComponentType = Literal["frontend", "backend", "database", "service", "infra", "tool"]
ProjectType = Literal["web-app", "api", "library", "cli", "mobile", "desktop", "other"]
Maturity = Literal["prototype", "alpha", "beta", "production", "mature"]
DependencyStatus = Literal["healthy", "warning", "critical"]

Number = Union[int, float]


def _choice(value: Any, allowed: tuple, fallback: Any) -> Any:
    if isinstance(value, str) and value.strip().lower() in allowed:
        return value.strip().lower()
    return fallback


def _number(value: Any) -> Number:
    """Numbers pass through, numeric strings are parsed, anything else is 0."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else 0
    if isinstance(value, str):
        try:
            parsed = float(value.strip())
        except ValueError:
            return 0
        if not math.isfinite(parsed):
            return 0
        return int(parsed) if parsed.is_integer() else parsed
    return 0


def _text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def _string_list(value: Any) -> List[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    return [t for t in (_text(v) for v in value) if t]


def _object_list(value: Any) -> List[Any]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, (dict, BaseModel))]


class _Model(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class Scores(_Model):
    overall: Number = 0
    code_quality: Number = 0
    security: Number = 0
    maintainability: Number = 0
    documentation: Number = 0
    testing: Number = 0
    performance: Number = 0
    developer_experience: Number = 0

    @field_validator("*", mode="before")
    @classmethod
    def _numeric(cls, v):
        return _number(v)


class Insight(_Model):
    type: InsightType = "suggestion"
    title: str = ""
    description: str = ""
    priority: Priority = "medium"

    @field_validator("type", mode="before")
    @classmethod
    def _type(cls, v):
        return _choice(v, InsightType.__args__, "suggestion")

    @field_validator("priority", mode="before")
    @classmethod
    def _priority(cls, v):
        return _choice(v, Priority.__args__, "medium")

    @field_validator("title", "description", mode="before")
    @classmethod
    def _texts(cls, v):
        return _text(v)


class ArchitectureComponent(_Model):
    name: str = ""
    type: ComponentType = "service"
    description: str = ""

    @field_validator("type", mode="before")
    @classmethod
    def _type(cls, v):
        return _choice(v, ComponentType.__args__, "service")

    @field_validator("name", "description", mode="before")
    @classmethod
    def _texts(cls, v):
        return _text(v)


class DependencyHealth(_Model):
    status: DependencyStatus = "warning"
    outdated: Number = 0
    vulnerabilities: Number = 0
    heaviest: List[str] = []
    suggestions: List[str] = []

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, v):
        return _choice(v, DependencyStatus.__args__, "warning")

    @field_validator("outdated", "vulnerabilities", mode="before")
    @classmethod
    def _count(cls, v):
        return _number(v)

    @field_validator("heaviest", "suggestions", mode="before")
    @classmethod
    def _lists(cls, v):
        return _string_list(v)


class AnalysisResult(_Model):
    """Structured health report produced from the model's JSON answer.

    Anything the model leaves out or mistypes is filled with a neutral
    default here: unknown enum values collapse to a neutral member,
    non-numeric scores become 0 and list entries of the wrong kind are
    dropped. Any JSON object therefore validates to the full shape.
    """

    summary: str = ""
    project_type: ProjectType = "other"
    maturity: Optional[Maturity] = None
    tech_stack: List[str] = []
    scores: Scores = Field(default_factory=Scores)
    insights: List[Insight] = []
    architecture: List[ArchitectureComponent] = []
    dependencies: Optional[DependencyHealth] = None
    quick_wins: List[str] = []
    long_term_improvements: List[str] = []
    # true only when the sample analysis stood in for a real model call
    demo: bool = False

    @field_validator("summary", mode="before")
    @classmethod
    def _summary(cls, v):
        return _text(v)

    @field_validator("project_type", mode="before")
    @classmethod
    def _project_type(cls, v):
        return _choice(v, ProjectType.__args__, "other")

    @field_validator("maturity", mode="before")
    @classmethod
    def _maturity(cls, v):
        return _choice(v, Maturity.__args__, None)

    @field_validator("scores", mode="before")
    @classmethod
    def _scores(cls, v):
        return v if isinstance(v, (dict, Scores)) else {}

    @field_validator("dependencies", mode="before")
    @classmethod
    def _dependencies(cls, v):
        return v if isinstance(v, (dict, DependencyHealth)) else None

    @field_validator("tech_stack", "quick_wins", "long_term_improvements", mode="before")
    @classmethod
    def _strings(cls, v):
        return _string_list(v)

    @field_validator("insights", "architecture", mode="before")
    @classmethod
    def _objects(cls, v):
        return _object_list(v)
