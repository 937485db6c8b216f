from __future__ import annotations

"""Domain models shared across the summarization pipeline."""

from dataclasses import dataclass, field
from typing import Literal, Optional, Tuple


ShapeOption = Literal["paragraph", "lines"]


@dataclass(frozen=True, slots=True)
class SummaryConstraints:
    min_words: int
    max_words: int
    line_count: Optional[int] = None

    def __post_init__(self) -> None:
        if self.min_words < 1:
            raise ValueError("min_words must be at least 1")
        if self.min_words > self.max_words:
            raise ValueError(
                f"min_words ({self.min_words}) exceeds max_words ({self.max_words})"
            )
        if self.line_count is not None and self.line_count < 1:
            raise ValueError("line_count must be at least 1 when set")

    @property
    def target_words(self) -> int:
        return (self.min_words + self.max_words) // 2

    @property
    def shape(self) -> ShapeOption:
        return "paragraph" if self.line_count is None else "lines"

    @property
    def fixed_lines(self) -> bool:
        return self.line_count is not None


@dataclass(frozen=True, slots=True)
class SummaryOptions:
    """Every tunable that influences a summary; all of it is fingerprinted."""

    constraints: SummaryConstraints
    model: str
    max_tokens: int = 160
    expand_retries: int = 1
    input_char_limit: int = 12000


@dataclass(slots=True)
class Summary:
    text: str
    word_count: int
    line_count: int
    passes: int = 1
    below_minimum: bool = False


@dataclass(frozen=True, slots=True)
class PromptPair:
    system: str
    user: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(slots=True)
class BatchItem:
    id: Optional[str]
    text: Optional[str]
