"""Enhancement models - catalog entries, analyses, and results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class EnhancementCategory(Enum):
    """Category of enhancement. Declaration order is apply precedence."""

    SAFETY = "safety"
    SPEED = "speed"


class IssueSeverity(Enum):
    """Issue severity level."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ChangeType(Enum):
    """Kind of text edit an enhancement made."""

    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    WRAPPED = "WRAPPED"


@dataclass(frozen=True)
class Enhancement:
    """Static catalog entry for one rule."""

    id: str
    name: str
    description: str
    category: EnhancementCategory | str
    priority: int  # higher = more urgent
    requires_confirmation: bool = False
    tags: frozenset[str] = frozenset()

    @property
    def category_name(self) -> str:
        if isinstance(self.category, EnhancementCategory):
            return self.category.value
        return self.category


@dataclass(frozen=True)
class EnhancementIssue:
    """A risky construct found during analysis.

    ``line`` refers to the content as it was when analysed; later edits in the
    pipeline can shift it.
    """

    severity: IssueSeverity
    description: str
    location: str  # offending statement or line content
    line: int  # 1-based, 1 when unresolvable
    recommendation: str


@dataclass(frozen=True)
class EnhancementImpact:
    """Expected effect of applying an enhancement, each value 0.0-1.0."""

    risk_reduction: float = 0.0
    performance_improvement: float = 0.0
    complexity_added: float = 0.0
    description: str = ""


@dataclass(frozen=True)
class EnhancementAnalysis:
    """Outcome of analysing one migration with one module."""

    applicable: bool
    confidence: float  # 0.0-1.0
    issues: tuple[EnhancementIssue, ...] = ()
    impact: EnhancementImpact = field(default_factory=EnhancementImpact)

    @classmethod
    def not_applicable(cls, description: str) -> EnhancementAnalysis:
        """The canonical no-op analysis."""
        return cls(
            applicable=False,
            confidence=0.0,
            issues=(),
            impact=EnhancementImpact(description=description),
        )


@dataclass(frozen=True)
class EnhancementChange:
    """A single edit recorded by an applicator."""

    type: ChangeType
    original: str
    modified: str
    line: int
    reason: str


@dataclass
class EnhancementResult:
    """Result of applying (or declining to apply) one enhancement."""

    enhancement: Enhancement
    applied: bool
    modified_content: str
    warnings: list[str] = field(default_factory=list)
    changes: list[EnhancementChange] = field(default_factory=list)

    @classmethod
    def skipped(cls, enhancement: Enhancement, content: str, *warnings: str) -> EnhancementResult:
        """Not applied: content is handed back untouched."""
        return cls(
            enhancement=enhancement,
            applied=False,
            modified_content=content,
            warnings=list(warnings),
        )


@dataclass
class EnhanceReport:
    """Aggregated result of an engine run."""

    original: str
    content: str
    results: list[EnhancementResult] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    analyses: dict[str, EnhancementAnalysis] = field(default_factory=dict)

    @property
    def applied(self) -> list[Enhancement]:
        return [r.enhancement for r in self.results if r.applied]

    @property
    def changed(self) -> bool:
        return self.content != self.original
