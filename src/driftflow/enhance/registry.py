"""Enhancement module registry."""

from __future__ import annotations

import re

from driftflow.core.errors import CatalogError
from driftflow.enhance.base import EnhancementModule
from driftflow.enhance.models import Enhancement, EnhancementCategory

_ID_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


class ModuleRegistry:
    """Registry of enhancement modules, kept in registration order."""

    def __init__(self) -> None:
        self._modules: dict[str, EnhancementModule] = {}

    def register(self, module: EnhancementModule) -> EnhancementModule:
        """Register a module.

        Raises:
            CatalogError: If the module does not satisfy the module contract,
                its id is malformed, or the id is already registered.
        """
        if not isinstance(module, EnhancementModule):
            raise CatalogError.invalid_module(module, "does not implement detect/analyze/apply")
        enhancement = getattr(module, "enhancement", None)
        if not isinstance(enhancement, Enhancement):
            raise CatalogError.invalid_module(module, "missing Enhancement metadata")
        if not _ID_PATTERN.match(enhancement.id):
            raise CatalogError.invalid_module(module, f"malformed id {enhancement.id!r}")
        if enhancement.id in self._modules:
            raise CatalogError.duplicate_id(enhancement.id)
        self._modules[enhancement.id] = module
        return module

    def get(self, enhancement_id: str) -> EnhancementModule | None:
        """Get module by enhancement ID."""
        return self._modules.get(enhancement_id)

    def require(self, enhancement_id: str) -> EnhancementModule:
        """Get module by enhancement ID, raising CatalogError if unknown."""
        module = self._modules.get(enhancement_id)
        if module is None:
            raise CatalogError.unknown_id(enhancement_id)
        return module

    def all(self) -> list[EnhancementModule]:
        """Get all registered modules."""
        return list(self._modules.values())

    def for_category(self, category: EnhancementCategory | str) -> list[EnhancementModule]:
        """Get modules in a category."""
        name = category.value if isinstance(category, EnhancementCategory) else category
        return [m for m in self._modules.values() if m.enhancement.category_name == name]

    def index_of(self, enhancement_id: str) -> int:
        """Registration position, used as the final ordering tie-break."""
        return list(self._modules).index(enhancement_id)

    def clear(self) -> None:
        """Clear all registered modules."""
        self._modules.clear()

    def __contains__(self, enhancement_id: object) -> bool:
        return enhancement_id in self._modules

    def __len__(self) -> int:
        return len(self._modules)


# Global registry
registry = ModuleRegistry()
