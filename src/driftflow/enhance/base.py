"""Enhancement module contract and shared scaffolding.

A module is one rule with three independent operations:

- ``detect``: cheap content-only predicate over the lower-cased forward script.
- ``analyze``: ``detect`` plus a line walk that emits one issue per risky
  construct, a confidence from the shared scorer, and a fixed impact.
- ``apply``: rewrites text. It always re-scans the text it is given, never
  line numbers captured during ``analyze``, because earlier modules in the
  pipeline may have inserted lines.

Modules hold no per-run state; one instance serves every migration.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from typing import ClassVar, Protocol, runtime_checkable

from driftflow.enhance.models import (
    ChangeType,
    Enhancement,
    EnhancementAnalysis,
    EnhancementChange,
    EnhancementImpact,
    EnhancementIssue,
    EnhancementResult,
)
from driftflow.enhance.scoring import (
    DEFAULT_THRESHOLD,
    Evidence,
    EvidenceCount,
    calculate_confidence,
    is_found,
)
from driftflow.migrations.models import MigrationFile
from driftflow.migrations.sql import strip_comments


@runtime_checkable
class EnhancementModule(Protocol):
    """The three-operation contract every catalog entry satisfies."""

    enhancement: Enhancement
    idempotent: bool

    def detect(self, migration: MigrationFile) -> bool: ...

    def analyze(self, migration: MigrationFile) -> EnhancementAnalysis: ...

    def apply(self, content: str, migration: MigrationFile) -> EnhancementResult: ...


class BaseModule:
    """Skeleton shared by the concrete modules.

    Subclasses set ``enhancement`` and ``impact`` and implement ``_matches``,
    ``_collect_issues`` and ``_rewrite``. ``_evidence`` can be overridden to
    feed module-specific optional and negative evidence into the scorer.
    """

    enhancement: ClassVar[Enhancement]
    impact: ClassVar[EnhancementImpact]
    not_applicable_reason: ClassVar[str] = "Not applicable"
    threshold: ClassVar[float] = DEFAULT_THRESHOLD
    # False when re-running apply on its own output would duplicate edits
    idempotent: ClassVar[bool] = False

    # -- detection --------------------------------------------------------

    def detect(self, migration: MigrationFile) -> bool:
        raw = _lowered(migration)
        # comments are ignored so warnings inserted by other modules never trigger
        content = strip_comments(raw)
        if not content.strip():
            return False
        if self._already_applied(raw):
            return False
        return self._matches(content)

    def _matches(self, content: str) -> bool:
        raise NotImplementedError

    def _already_applied(self, raw: str) -> bool:
        """True when ``raw`` (lower-cased, comments kept) carries this module's own edit."""
        return False

    # -- analysis ---------------------------------------------------------

    def analyze(self, migration: MigrationFile) -> EnhancementAnalysis:
        if not self.detect(migration):
            return EnhancementAnalysis.not_applicable(self.not_applicable_reason)
        issues = tuple(self._collect_issues(migration.up))
        confidence = calculate_confidence(
            self._evidence(strip_comments(migration.up.lower()), issues)
        )
        if not is_found(confidence, self.threshold):
            return EnhancementAnalysis.not_applicable(self.not_applicable_reason)
        return EnhancementAnalysis(
            applicable=True,
            confidence=confidence,
            issues=issues,
            impact=self.impact,
        )

    def _collect_issues(self, content: str) -> Iterable[EnhancementIssue]:
        return ()

    def _evidence(self, content: str, issues: tuple[EnhancementIssue, ...]) -> Evidence:
        """Trigger matched is the required evidence; issues are optional evidence."""
        return Evidence(
            required=EvidenceCount(found=1, total=1),
            optional=EvidenceCount(found=1 if issues else 0, total=1),
        )

    # -- application ------------------------------------------------------

    def apply(self, content: str, migration: MigrationFile) -> EnhancementResult:
        if not self.analyze(migration.with_up(content)).applicable:
            return EnhancementResult.skipped(
                self.enhancement, content, f"{self.enhancement.name}: nothing to change"
            )
        return self._rewrite(content)

    def _rewrite(self, content: str) -> EnhancementResult:
        raise NotImplementedError

    def _result(
        self,
        content: str,
        modified: str,
        changes: list[EnhancementChange],
        warnings: list[str] | None = None,
        empty_warning: str | None = None,
    ) -> EnhancementResult:
        """Build a result, falling back to the untouched input when nothing changed."""
        if not changes or modified == content:
            return EnhancementResult.skipped(
                self.enhancement,
                content,
                empty_warning or f"No {self.enhancement.name.lower()} changes were applied",
            )
        return EnhancementResult(
            enhancement=self.enhancement,
            applied=True,
            modified_content=modified,
            warnings=list(warnings or []),
            changes=changes,
        )


def _lowered(migration: MigrationFile) -> str:
    up = migration.up
    return up.lower() if isinstance(up, str) else ""


# -- text helpers ---------------------------------------------------------

LinePattern = re.Pattern[str] | str | Callable[[str], bool]


def is_comment(line: str) -> bool:
    return line.lstrip().startswith("--")


def find_line(content: str, pattern: LinePattern) -> int:
    """1-based number of the first line matching ``pattern``, 1 if none does."""
    for number, _ in matching_lines(content, pattern):
        return number
    return 1


def matching_lines(content: str, pattern: LinePattern) -> list[tuple[int, str]]:
    """All (1-based line number, line) pairs matching ``pattern``.

    Comment lines never match.
    """
    matcher = _as_matcher(pattern)
    return [
        (number, line)
        for number, line in enumerate(content.split("\n"), start=1)
        if matcher(line)
    ]


def _as_matcher(pattern: LinePattern) -> Callable[[str], bool]:
    if isinstance(pattern, str):
        needle = pattern.lower()
        return lambda line: not is_comment(line) and needle in line.lower()
    if isinstance(pattern, re.Pattern):
        return lambda line: not is_comment(line) and pattern.search(line) is not None
    return lambda line: not is_comment(line) and pattern(line)


def comment_block(lines: Iterable[str], indent: str = "") -> list[str]:
    return [f"{indent}-- {line}".rstrip() for line in lines]


def _annotated(out: list[str], block: list[str]) -> bool:
    """True when ``block`` already sits inside the comment run ending ``out``."""
    start = len(out)
    while start > 0 and is_comment(out[start - 1]):
        start -= 1
    run = [line.strip() for line in out[start:]]
    wanted = [line.strip() for line in block]
    return any(run[i : i + len(wanted)] == wanted for i in range(len(run) - len(wanted) + 1))


def insert_before_matches(
    content: str,
    pattern: LinePattern,
    block: Callable[[str], list[str]],
    reason: str,
) -> tuple[str, list[EnhancementChange]]:
    """Insert ``block(line)`` above every line matching ``pattern``.

    The block is indented like the line it annotates. A line that already has
    the same block in the comments directly above it is left alone, so
    re-running is a no-op. Change line numbers refer to the rewritten text.
    """
    matcher = _as_matcher(pattern)
    out: list[str] = []
    changes: list[EnhancementChange] = []
    for line in content.split("\n"):
        if matcher(line):
            indent = line[: len(line) - len(line.lstrip())]
            inserted = [f"{indent}{b}" for b in block(line)]
            if inserted and not _annotated(out, inserted):
                changes.append(
                    EnhancementChange(
                        type=ChangeType.ADDED,
                        original=line,
                        modified="\n".join([*inserted, line]),
                        line=len(out) + 1,
                        reason=reason,
                    )
                )
                out.extend(inserted)
        out.append(line)
    return "\n".join(out), changes


def replace_in_matches(
    content: str,
    pattern: re.Pattern[str],
    substitute: Callable[[re.Match[str]], str],
    reason: str,
) -> tuple[str, list[EnhancementChange]]:
    """Rewrite every non-comment line with ``pattern.sub(substitute, line)``."""
    out: list[str] = []
    changes: list[EnhancementChange] = []
    for number, line in enumerate(content.split("\n"), start=1):
        if not is_comment(line):
            rewritten = pattern.sub(substitute, line)
            if rewritten != line:
                changes.append(
                    EnhancementChange(
                        type=ChangeType.MODIFIED,
                        original=line,
                        modified=rewritten,
                        line=number,
                        reason=reason,
                    )
                )
                line = rewritten
        out.append(line)
    return "\n".join(out), changes


def prepend_block(content: str, block: list[str], reason: str) -> tuple[str, EnhancementChange]:
    """Put a comment block at the very top of the script."""
    header = "\n".join(block)
    return (
        f"{header}\n{content}",
        EnhancementChange(
            type=ChangeType.ADDED,
            original="",
            modified=header,
            line=1,
            reason=reason,
        ),
    )
