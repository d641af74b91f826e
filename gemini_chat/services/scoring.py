"""Model desirability scoring.

The score is a priority table: each rule belongs to a bucket, only the first
matching rule of a bucket contributes, and the bucket contributions add up.
"""

from __future__ import annotations

from typing import NamedTuple, Tuple

VISION_MARKER = "vision"


class ScoringRule(NamedTuple):
    bucket: str
    marker: str
    weight: int


SCORING_RULES: Tuple[ScoringRule, ...] = (
    # generation
    ScoringRule("generation", "2.0", 100),
    ScoringRule("generation", "1.5", 50),
    ScoringRule("generation", "1.0", 10),
    # capability tier
    ScoringRule("tier", "ultra", 30),
    ScoringRule("tier", "pro", 20),
    ScoringRule("tier", "flash", 15),
    # must outweigh the widest tier spread
    ScoringRule("capability", VISION_MARKER, 40),
)


def is_vision_name(model_name: str) -> bool:
    return VISION_MARKER in model_name


def score(model_name: str, *, probed_vision: bool = False) -> int:
    """Return the desirability score of *model_name*.

    ``probed_vision`` credits the vision bonus to a model whose name carries
    no vision marker but which answered a live multimodal probe.
    """
    matched = set()
    total = 0
    for rule in SCORING_RULES:
        if rule.bucket in matched:
            continue
        hit = rule.marker in model_name
        if rule.marker == VISION_MARKER and probed_vision:
            hit = True
        if hit:
            matched.add(rule.bucket)
            total += rule.weight
    return total


def is_better_model(candidate: str, incumbent: str, *, vision_capable: bool = False) -> bool:
    """Strict comparison; on equal scores the incumbent stays.

    ``vision_capable`` scores both sides as vision models, which is how the
    vision slot compares candidates whose capability came from a probe.
    """
    return score(candidate, probed_vision=vision_capable) > score(incumbent, probed_vision=vision_capable)
