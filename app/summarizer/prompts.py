"""Prompt construction for first and expansion passes."""

from __future__ import annotations

from app.summarizer.models import PromptPair, SummaryConstraints
from app.summarizer.text import count_words


FORMAT_RULES = (
    "Use plain text only. Do not add numbering, bullets, headings, labels, "
    "quotation marks or extra commentary."
)


def _shape_instruction(constraints: SummaryConstraints) -> str:
    if constraints.fixed_lines:
        return (
            f"Split the summary into exactly {constraints.line_count} short lines. "
            "Each line should be a simple sentence or phrase. "
            "Use plain newlines between lines."
        )
    return "Write the summary as one single paragraph with no line breaks."


def _length_instruction(constraints: SummaryConstraints) -> str:
    return (
        f"Aim for about {constraints.target_words} words and stay between "
        f"{constraints.min_words} and {constraints.max_words} words in total."
    )


def first_pass(constraints: SummaryConstraints, source: str) -> PromptPair:
    """Build the prompt pair for the initial summary."""
    system = " ".join(
        [
            "You are a concise summarizer.",
            _length_instruction(constraints),
            _shape_instruction(constraints),
            FORMAT_RULES,
        ]
    )
    return PromptPair(system=system, user=(source,))


def expand_pass(
    constraints: SummaryConstraints, source: str, draft: str
) -> PromptPair:
    """
    Build the prompt pair that lengthens an under-length draft.

    The original text and the current draft travel as separate user messages
    so the model can reconcile the draft against its source.
    """
    system = " ".join(
        [
            "You are a careful editor improving a summary that is too short.",
            f"The draft currently has {count_words(draft)} words but must contain "
            f"at least {constraints.min_words} words and at most "
            f"{constraints.max_words} words.",
            "Lengthen the draft using only facts stated in the original text.",
            "Keep every fact already in the draft and never invent new details.",
            _shape_instruction(constraints),
            FORMAT_RULES,
            "Reply with the revised summary only.",
        ]
    )
    return PromptPair(
        system=system,
        user=(
            f"ORIGINAL TEXT:\n{source}",
            f"CURRENT DRAFT:\n{draft}",
        ),
    )
