"""Directories the ORM detectors never descend into.

Tier 0 (VCS_DIRS): version-control internals.
Tier 1 (DEPENDENCY_DIRS): package manager installs and virtualenvs.
Tier 2 (BUILD_DIRS): build outputs and framework caches.

Config files for an ORM live in the project sources, so walking any of these
only costs time and can surface vendored copies of someone else's config.
"""

from __future__ import annotations

VCS_DIRS: frozenset[str] = frozenset((".git", ".svn", ".hg", ".bzr"))

DEPENDENCY_DIRS: frozenset[str] = frozenset(
    (
        # JavaScript/Node.js
        "node_modules",
        ".npm",
        ".yarn",
        ".pnpm-store",
        "bower_components",
        # Python
        "venv",
        ".venv",
        "__pycache__",
        "site-packages",
        ".tox",
        # Generic vendoring
        "vendor",
    )
)

BUILD_DIRS: frozenset[str] = frozenset(
    (
        "dist",
        "build",
        "out",
        "coverage",
        ".next",  # Next.js build
        ".nuxt",  # Nuxt.js build
        ".turbo",  # Turborepo cache
        ".cache",
    )
)

PRUNABLE_DIRS: frozenset[str] = VCS_DIRS | DEPENDENCY_DIRS | BUILD_DIRS


def is_prunable(dirname: str) -> bool:
    """Check if a directory should never be walked during detection."""
    return dirname in PRUNABLE_DIRS


__all__ = [
    "VCS_DIRS",
    "DEPENDENCY_DIRS",
    "BUILD_DIRS",
    "PRUNABLE_DIRS",
    "is_prunable",
]
