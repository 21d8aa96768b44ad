# src/tracking/token_accountant.py
"""Token accounting across the stage results and summary of a session."""

from __future__ import annotations

from typing import Iterable

from docreview.core.models import TokenUsage


def aggregate_usage(usages: Iterable[TokenUsage | None]) -> TokenUsage:
    """Field-wise sum of the given usages.

    Missing usages count as zero. The result keeps the invariant
    ``total == prompt_tokens + completion_tokens``.
    """
    prompt = 0
    completion = 0
    for usage in usages:
        if usage is None:
            continue
        prompt += usage.prompt_tokens
        completion += usage.completion_tokens
    return TokenUsage.from_counts(prompt, completion)
