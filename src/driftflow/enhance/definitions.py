"""Module definitions - register the built-in enhancement catalog."""

from driftflow.enhance import safety, speed
from driftflow.enhance.base import BaseModule
from driftflow.enhance.registry import ModuleRegistry, registry

# Registration order is the final ordering tie-break, keep it stable.
CATALOG: tuple[type[BaseModule], ...] = (
    # =========================================================================
    # Safety
    # =========================================================================
    safety.TransactionWrapperModule,
    safety.DropTableSafeguardModule,
    safety.DropColumnModule,
    safety.ForeignKeyConstraintModule,
    safety.NullableColumnModule,
    safety.DataTypeChangeModule,
    safety.ColumnRenamingModule,
    safety.CascadeDeleteModule,
    safety.UniqueConstraintModule,
    safety.CheckConstraintModule,
    safety.BackupRecommendationModule,
    safety.MigrationOrderModule,
    # =========================================================================
    # Speed
    # =========================================================================
    speed.ConcurrentIndexModule,
    speed.BatchInsertModule,
)


def register_catalog(target: ModuleRegistry) -> ModuleRegistry:
    """Register one instance of every built-in module into ``target``."""
    for module_cls in CATALOG:
        target.register(module_cls())
    return target


register_catalog(registry)
