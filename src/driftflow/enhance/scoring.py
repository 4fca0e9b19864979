"""Evidence-based confidence scoring.

Shared by the enhancement modules ("does this migration need X") and the ORM
detectors ("does this project use Y"). Required evidence carries 70% of the
weight, optional evidence 30%, and each piece of negative evidence subtracts
0.1. The result is clamped to [0, 1].

With these weights a bundle with no required evidence tops out at 0.3, which
is not above the default threshold, so it can never count as found.
"""

from __future__ import annotations

from dataclasses import dataclass, field

REQUIRED_WEIGHT = 0.7
OPTIONAL_WEIGHT = 0.3
NEGATIVE_PENALTY = 0.1

DEFAULT_THRESHOLD = 0.3


@dataclass(frozen=True)
class EvidenceCount:
    found: int = 0
    total: int = 0

    @property
    def ratio(self) -> float:
        if self.total <= 0:
            return 0.0
        return min(max(self.found, 0) / self.total, 1.0)


@dataclass(frozen=True)
class Evidence:
    required: EvidenceCount = field(default_factory=EvidenceCount)
    optional: EvidenceCount = field(default_factory=EvidenceCount)
    negative: int = 0


def calculate_confidence(evidence: Evidence) -> float:
    """Combine evidence into a confidence in [0, 1]."""
    if evidence.required.total <= 0:
        return 0.0
    score = (
        evidence.required.ratio * REQUIRED_WEIGHT
        + evidence.optional.ratio * OPTIONAL_WEIGHT
        - max(evidence.negative, 0) * NEGATIVE_PENALTY
    )
    # round away float noise so full evidence is exactly 1.0
    return round(max(0.0, min(1.0, score)), 6)


def is_found(confidence: float, threshold: float = DEFAULT_THRESHOLD) -> bool:
    return confidence > threshold


def to_percent(confidence: float) -> int:
    """Rescale a 0-1 confidence to the 0-100 integer scale."""
    return round(max(0.0, min(1.0, confidence)) * 100)
