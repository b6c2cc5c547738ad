"""Relevance critics for the refinement loop."""

from ragfusion.critique.critic import (
    JudgmentCritic,
    ThresholdCritic,
    build_judgment_prompt,
    parse_verdict,
)

__all__ = [
    "JudgmentCritic",
    "ThresholdCritic",
    "build_judgment_prompt",
    "parse_verdict",
]
