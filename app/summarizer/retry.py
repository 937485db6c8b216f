"""First-pass / expansion-pass orchestration under a word budget."""

from __future__ import annotations

import enum
import logging

from app.summarizer import prompts
from app.summarizer.client import CompletionClient
from app.summarizer.errors import UpstreamTransientError
from app.summarizer.models import PromptPair, Summary, SummaryConstraints, SummaryOptions
from app.summarizer.text import (
    count_lines,
    count_words,
    normalize,
    reflow_to_lines,
    strip_markers,
    trim_to_max,
)

logger = logging.getLogger(__name__)


class Phase(enum.Enum):
    FIRST_PASS = "first_pass"
    EXPANDING = "expanding"
    DONE = "done"


def enforce_budget(raw: str, constraints: SummaryConstraints) -> str:
    """
    Post-process one completion into the required shape.

    Markers are stripped line by line before lines are merged, then the text
    is capped at ``max_words`` and, for fixed-line output, reflowed.
    """
    text = strip_markers(normalize(raw, keep_lines=True), keep_lines=constraints.fixed_lines)
    if count_words(text) > constraints.max_words:
        text = trim_to_max(text, constraints.max_words)
    if constraints.fixed_lines:
        text = reflow_to_lines(text, constraints.line_count)
    return text


class RetryController:
    """
    Bounded state machine: one first pass, then at most ``expand_retries``
    expansion passes while the draft is under ``min_words``.
    """

    def __init__(self, client: CompletionClient):
        self.client = client

    async def _run_pass(
        self, prompt: PromptPair, options: SummaryOptions
    ) -> str:
        raw = await self.client.complete(
            prompt.system, prompt.user, options.max_tokens, model=options.model
        )
        return enforce_budget(raw, options.constraints)

    async def run(self, source: str, options: SummaryOptions) -> Summary:
        constraints = options.constraints
        retries_remaining = options.expand_retries
        passes = 0
        draft = ""
        phase = Phase.FIRST_PASS

        while phase is not Phase.DONE:
            if phase is Phase.FIRST_PASS:
                draft = await self._run_pass(
                    prompts.first_pass(constraints, source), options
                )
                passes += 1
            else:
                retries_remaining -= 1
                expanded = await self._run_pass(
                    prompts.expand_pass(constraints, source, draft), options
                )
                passes += 1
                if count_words(expanded) > 0:
                    draft = expanded
                logger.info(
                    f"Expansion pass {passes - 1} produced {count_words(draft)} words "
                    f"(min {constraints.min_words})"
                )

            if count_words(draft) < constraints.min_words and retries_remaining > 0:
                phase = Phase.EXPANDING
            else:
                phase = Phase.DONE

        if count_words(draft) > constraints.max_words:
            draft = trim_to_max(draft, constraints.max_words)
            if constraints.fixed_lines:
                draft = reflow_to_lines(draft, constraints.line_count)

        word_count = count_words(draft)
        if word_count == 0:
            raise UpstreamTransientError(
                "Completion provider returned empty content.",
                details={"passes": passes},
            )

        below_minimum = word_count < constraints.min_words
        if below_minimum:
            logger.warning(
                f"Summary below minimum after {passes} passes: "
                f"{word_count} < {constraints.min_words} words"
            )

        return Summary(
            text=draft,
            word_count=word_count,
            line_count=count_lines(draft),
            passes=passes,
            below_minimum=below_minimum,
        )
