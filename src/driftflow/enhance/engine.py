"""Enhancement engine - analyse, order, and apply modules to a migration.

Two phases:

1. Gather: every enabled module analyses the same immutable migration
   concurrently. A module that raises is logged and treated as
   not applicable; it never fails the run.
2. Apply: the selected modules run one at a time in a deterministic order,
   each receiving the text produced by the previous one.

Ordering is category first (safety before speed before anything else),
then effective priority descending, then registration order.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from collections.abc import Callable, Iterable
from typing import Any

from driftflow.config.models import EnhancementSettings
from driftflow.core.logging import get_logger
from driftflow.enhance.base import EnhancementModule
from driftflow.enhance.models import (
    EnhanceReport,
    Enhancement,
    EnhancementAnalysis,
    EnhancementCategory,
    EnhancementResult,
)
from driftflow.enhance.registry import ModuleRegistry
from driftflow.enhance.rollback import generate_rollback
from driftflow.migrations.models import MigrationFile
from driftflow.migrations.sql import replace_forward_section, split_rollback_section

log = get_logger("enhance.engine")

# Asked before applying a module that requires confirmation.
ConfirmCallback = Callable[[Enhancement, EnhancementAnalysis | None], bool]

_CATEGORY_RANK = {category.value: rank for rank, category in enumerate(EnhancementCategory)}


class EnhancementEngine:
    """Runs the registered enhancement modules against migrations.

    Args:
        registry: Modules to run. Defaults to the built-in catalog.
        settings: Enable flags, disabled ids, priority overrides and auto-approve.
        confirm: Callback consulted for modules that require confirmation.
            Without it, only ``settings.auto_approve`` grants confirmation.
    """

    def __init__(
        self,
        registry: ModuleRegistry | None = None,
        settings: EnhancementSettings | None = None,
        confirm: ConfirmCallback | None = None,
    ) -> None:
        if registry is None:
            from driftflow.enhance.definitions import registry as default_registry

            registry = default_registry
        self._registry = registry
        self._settings = settings or EnhancementSettings()
        self._confirm = confirm

    @property
    def settings(self) -> EnhancementSettings:
        return self._settings

    # -- catalog ------------------------------------------------------------

    def get_enhancement(self, enhancement_id: str) -> Enhancement | None:
        module = self._registry.get(enhancement_id)
        return module.enhancement if module else None

    def all_enhancements(self) -> list[Enhancement]:
        return [m.enhancement for m in self._registry.all()]

    def enabled_modules(self) -> list[EnhancementModule]:
        """Modules that pass the category flags and the disabled list."""
        disabled = set(self._settings.disabled_enhancements)
        enabled = []
        for module in self._registry.all():
            enhancement = module.enhancement
            if enhancement.id in disabled:
                continue
            if enhancement.category_name == EnhancementCategory.SAFETY.value:
                if not self._settings.enable_safety:
                    continue
            elif enhancement.category_name == EnhancementCategory.SPEED.value:
                if not self._settings.enable_speed:
                    continue
            enabled.append(module)
        return enabled

    def effective_priority(self, enhancement: Enhancement) -> int:
        return self._settings.custom_priorities.get(enhancement.id, enhancement.priority)

    def get_stats(self) -> dict[str, Any]:
        """Catalog summary."""
        enhancements = self.all_enhancements()
        enabled = {m.enhancement.id for m in self.enabled_modules()}
        return {
            "total": len(enhancements),
            "enabled": len(enabled),
            "by_category": dict(Counter(e.category_name for e in enhancements)),
            "requires_confirmation": sum(1 for e in enhancements if e.requires_confirmation),
            "disabled": [e.id for e in enhancements if e.id not in enabled],
        }

    # -- gather phase -------------------------------------------------------

    async def analyze_all(self, migration: MigrationFile) -> dict[str, EnhancementAnalysis]:
        """Analyse ``migration`` with every enabled module concurrently.

        Returns analyses keyed by enhancement id, in registration order.
        """
        migration = _forward_only(migration)
        modules = self.enabled_modules()
        analyses = await asyncio.gather(
            *(asyncio.to_thread(self._safe_analyze, module, migration) for module in modules)
        )
        return {m.enhancement.id: a for m, a in zip(modules, analyses, strict=True)}

    def _safe_analyze(
        self, module: EnhancementModule, migration: MigrationFile
    ) -> EnhancementAnalysis:
        try:
            return module.analyze(migration)
        except Exception as e:
            log.warning(
                "module_failed",
                enhancement=module.enhancement.id,
                phase="analyze",
                migration=migration.name,
                error=str(e),
            )
            return EnhancementAnalysis.not_applicable(f"Analysis failed: {e}")

    def select(self, analyses: dict[str, EnhancementAnalysis]) -> list[Enhancement]:
        """Applicable enhancements in apply order."""
        selected = []
        for enhancement_id, analysis in analyses.items():
            if not analysis.applicable:
                continue
            module = self._registry.get(enhancement_id)
            if module is not None:
                selected.append(module.enhancement)
        return self.order(selected)

    def order(self, enhancements: Iterable[Enhancement]) -> list[Enhancement]:
        return sorted(enhancements, key=self._order_key)

    def _order_key(self, enhancement: Enhancement) -> tuple[int, int, int]:
        rank = _CATEGORY_RANK.get(enhancement.category_name, len(_CATEGORY_RANK))
        index = (
            self._registry.index_of(enhancement.id)
            if enhancement.id in self._registry
            else len(self._registry)
        )
        return (rank, -self.effective_priority(enhancement), index)

    async def detect_safety_enhancements(self, migration: MigrationFile) -> list[Enhancement]:
        return await self._detect_category(migration, EnhancementCategory.SAFETY)

    async def detect_speed_enhancements(self, migration: MigrationFile) -> list[Enhancement]:
        return await self._detect_category(migration, EnhancementCategory.SPEED)

    async def _detect_category(
        self, migration: MigrationFile, category: EnhancementCategory
    ) -> list[Enhancement]:
        analyses = await self.analyze_all(migration)
        return [e for e in self.select(analyses) if e.category_name == category.value]

    async def get_enhancement_analysis(
        self, enhancement_id: str, migration: MigrationFile
    ) -> EnhancementAnalysis:
        """Analyse ``migration`` with one module.

        Raises:
            CatalogError: If the id is not registered.
        """
        module = self._registry.require(enhancement_id)
        return await asyncio.to_thread(self._safe_analyze, module, _forward_only(migration))

    # -- apply phase --------------------------------------------------------

    def apply_enhancements(
        self,
        content: str,
        migration: MigrationFile,
        enhancements: Iterable[Enhancement],
        analyses: dict[str, EnhancementAnalysis] | None = None,
    ) -> EnhanceReport:
        """Apply ``enhancements`` in the given order, threading the text through.

        Each module runs at most once. Modules that require confirmation are
        applied only when the confirm callback or ``auto_approve`` allows it.
        An embedded ``-- rollback`` section is never rewritten; it is carried
        over unchanged after the enhanced forward part.
        """
        analyses = analyses or {}
        forward, reverse = split_rollback_section(content)
        if reverse is None:
            forward = content
        report = EnhanceReport(original=content, content=forward, analyses=dict(analyses))
        seen: set[str] = set()
        for enhancement in enhancements:
            if enhancement.id in seen:
                continue
            seen.add(enhancement.id)
            module = self._registry.require(enhancement.id)
            result = self._apply_one(
                module, report.content, migration, analyses.get(enhancement.id)
            )
            if result.applied:
                report.content = result.modified_content
                log.info(
                    "enhancement_applied",
                    enhancement=enhancement.id,
                    migration=migration.name,
                    changes=len(result.changes),
                )
            report.results.append(result)
            report.warnings.extend(result.warnings)
        if reverse is not None:
            report.content = (
                content
                if report.content == forward
                else replace_forward_section(content, report.content)
            )
        return report

    def _apply_one(
        self,
        module: EnhancementModule,
        content: str,
        migration: MigrationFile,
        analysis: EnhancementAnalysis | None,
    ) -> EnhancementResult:
        enhancement = module.enhancement
        if enhancement.requires_confirmation and not self._approved(enhancement, analysis):
            log.debug("enhancement_declined", enhancement=enhancement.id)
            return EnhancementResult.skipped(
                enhancement, content, f"{enhancement.name} requires confirmation; not applied"
            )
        try:
            return module.apply(content, migration)
        except Exception as e:
            log.warning(
                "module_failed",
                enhancement=enhancement.id,
                phase="apply",
                migration=migration.name,
                error=str(e),
            )
            return EnhancementResult.skipped(
                enhancement, content, f"{enhancement.name} failed: {e}"
            )

    def _approved(self, enhancement: Enhancement, analysis: EnhancementAnalysis | None) -> bool:
        if self._settings.auto_approve:
            return True
        if self._confirm is None:
            return False
        return bool(self._confirm(enhancement, analysis))

    async def enhance(
        self, migration: MigrationFile, *, validate_only: bool = False
    ) -> EnhanceReport:
        """Analyse and apply every applicable enhancement to ``migration.up``.

        With ``validate_only`` nothing is applied: every selected module gets a
        skipped result and the content is returned unchanged.
        """
        analyses = await self.analyze_all(migration)
        selected = self.select(analyses)
        log.debug(
            "enhancements_selected",
            migration=migration.name,
            selected=[e.id for e in selected],
        )
        if validate_only:
            return EnhanceReport(
                original=migration.up,
                content=migration.up,
                results=[
                    EnhancementResult.skipped(e, migration.up, "validate-only mode")
                    for e in selected
                ],
                analyses=analyses,
            )
        return self.apply_enhancements(migration.up, migration, selected, analyses)

    def generate_rollback(self, migration: MigrationFile) -> str:
        return generate_rollback(migration)


def _forward_only(migration: MigrationFile) -> MigrationFile:
    """``migration`` without an embedded ``-- rollback`` section."""
    forward, reverse = split_rollback_section(migration.up)
    return migration if reverse is None else migration.with_up(forward)
