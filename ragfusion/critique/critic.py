"""Relevance critics deciding whether a fused result set is sufficient.

Two interchangeable strategies satisfy the RelevanceCritic protocol:

- ThresholdCritic: deterministic; looks at the best source-local score
  among the top_n fused items.
- JudgmentCritic: delegates to an external Judge and parses its
  structured verdict. Anything it cannot parse, an exception, or a
  timeout yields sufficient=False.
"""

from __future__ import annotations

import asyncio
import json
import logging
import math
from typing import Any, Mapping

from ragfusion.config import DEFAULT_JUDGMENT_TIMEOUT
from ragfusion.core.errors import InvalidParameter
from ragfusion.core.protocols import Judge
from ragfusion.models.query import SufficiencyVerdict
from ragfusion.models.ranking import FusionResult

logger = logging.getLogger(__name__)

JUDGMENT_PROMPT = """You are checking whether retrieved passages contain enough information to answer a question.

Question:
{query}

Passages:
{passages}

Respond with a single JSON object and nothing else:
{{"sufficient": true or false, "rationale": "<one sentence>", "confidence": <number between 0 and 1>}}
"""


def build_judgment_prompt(query: str, passages: list[str]) -> str:
    """Render the text-in prompt for judges that take a single string."""
    numbered = "\n\n".join(f"[{i}] {text}" for i, text in enumerate(passages, start=1))
    return JUDGMENT_PROMPT.format(query=query, passages=numbered or "(none)")


class ThresholdCritic:
    """Sufficient iff the best top_n source-local score reaches min_score."""

    def __init__(self, min_score: float) -> None:
        if isinstance(min_score, bool) or not isinstance(min_score, (int, float)):
            raise InvalidParameter("min_score", min_score, "must be a number")
        if not math.isfinite(min_score):
            raise InvalidParameter("min_score", min_score, "must be finite")
        self._min_score = float(min_score)

    @property
    def min_score(self) -> float:
        return self._min_score

    async def assess(self, query: str, fused: FusionResult, top_n: int) -> SufficiencyVerdict:
        if fused.is_empty:
            return SufficiencyVerdict.reject("no candidates retrieved", confidence=0.0)

        top = fused.top(top_n)
        best = max(item.best_source_score for item in top)
        if best >= self._min_score:
            return SufficiencyVerdict(
                sufficient=True,
                rationale=f"best score {best:.4f} >= {self._min_score:.4f}",
                confidence=best,
            )
        return SufficiencyVerdict.reject(
            f"best score {best:.4f} < {self._min_score:.4f}",
            confidence=best,
        )


class JudgmentCritic:
    """Asks an external judge, fails closed on anything unexpected."""

    def __init__(
        self,
        judge: Judge,
        timeout: float = DEFAULT_JUDGMENT_TIMEOUT,
    ) -> None:
        if timeout <= 0:
            raise InvalidParameter("timeout", timeout, "must be > 0")
        self._judge = judge
        self._timeout = timeout

    async def assess(self, query: str, fused: FusionResult, top_n: int) -> SufficiencyVerdict:
        if fused.is_empty:
            return SufficiencyVerdict.reject("no candidates retrieved")

        passages = [item.text or "" for item in fused.top(top_n)]
        try:
            raw = await asyncio.wait_for(
                self._judge.judge(query, passages),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("judge_timeout timeout_s=%.1f", self._timeout)
            return SufficiencyVerdict.reject(f"judge timed out after {self._timeout}s")
        except Exception as exc:
            logger.warning("judge_failed error=%s", exc)
            return SufficiencyVerdict.reject(f"judge failed: {exc}")

        return parse_verdict(raw)


def parse_verdict(raw: str | Mapping[str, Any] | Any) -> SufficiencyVerdict:
    """Validate a judge response against the structured verdict contract.

    Accepts a JSON object (string, optionally wrapped in a ``` fence) or
    an already-decoded mapping. "sufficient" must be a real boolean;
    "rationale" must be a string if present; "confidence" must be a
    number in [0, 1] if present. Every violation is an insufficient
    verdict, never a coerced one.
    """
    if isinstance(raw, Mapping):
        payload: Any = raw
    elif isinstance(raw, str):
        try:
            payload = json.loads(_strip_fence(raw))
        except json.JSONDecodeError:
            return _malformed("response is not valid JSON", raw)
    else:
        return _malformed(f"unexpected response type {type(raw).__name__}", raw)

    if not isinstance(payload, Mapping):
        return _malformed("response is not a JSON object", raw)

    sufficient = payload.get("sufficient")
    if not isinstance(sufficient, bool):
        return _malformed("'sufficient' must be a boolean", raw)

    rationale = payload.get("rationale")
    if rationale is not None and not isinstance(rationale, str):
        return _malformed("'rationale' must be a string", raw)

    confidence = payload.get("confidence")
    if confidence is not None:
        if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
            return _malformed("'confidence' must be a number", raw)
        if not 0.0 <= confidence <= 1.0:
            return _malformed("'confidence' must be in [0, 1]", raw)
        confidence = float(confidence)

    return SufficiencyVerdict(
        sufficient=sufficient,
        rationale=rationale,
        confidence=confidence,
    )


def _strip_fence(text: str) -> str:
    stripped = text.strip()
    if stripped.startswith("```"):
        stripped = stripped.split("\n", 1)[1] if "\n" in stripped else ""
        if stripped.rstrip().endswith("```"):
            stripped = stripped.rstrip()[:-3]
    return stripped.strip()


def _malformed(reason: str, raw: Any) -> SufficiencyVerdict:
    logger.warning("judge_malformed reason=%s preview=%r", reason, str(raw)[:100])
    return SufficiencyVerdict.reject(f"malformed judgment: {reason}")
