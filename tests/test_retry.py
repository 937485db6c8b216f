import pytest

from conftest import FakeCompletionClient, make_options, words

from app.summarizer.errors import UpstreamQuotaError, UpstreamTransientError
from app.summarizer.retry import RetryController, enforce_budget
from app.summarizer.models import SummaryConstraints
from app.summarizer.text import count_lines, count_words


@pytest.mark.anyio
async def test_first_pass_within_window_skips_expansion():
    client = FakeCompletionClient(["  The quick brown fox.   jumps over the lazy dog  "])
    controller = RetryController(client)

    summary = await controller.run("source text", make_options(min_words=5, max_words=20))

    assert summary.text == "The quick brown fox. jumps over the lazy dog"
    assert summary.word_count == 9
    assert summary.passes == 1
    assert not summary.below_minimum
    assert len(client.calls) == 1
    assert client.calls[0]["model"] == "test/model"


@pytest.mark.anyio
async def test_short_draft_triggers_expansion_with_context():
    client = FakeCompletionClient(["too short", words(12)])
    controller = RetryController(client)

    summary = await controller.run("the source", make_options(min_words=10, max_words=20))

    assert summary.word_count == 12
    assert summary.passes == 2
    assert len(client.calls) == 2
    expand_call = client.calls[1]
    assert "ORIGINAL TEXT:\nthe source" in expand_call["user"][0]
    assert "CURRENT DRAFT:\ntoo short" in expand_call["user"][1]


@pytest.mark.anyio
async def test_retry_budget_is_bounded_and_undershoot_is_not_fatal():
    client = FakeCompletionClient(default="still short")
    controller = RetryController(client)

    summary = await controller.run(
        "source", make_options(min_words=10, max_words=20, expand_retries=2)
    )

    assert len(client.calls) == 3
    assert summary.text == "still short"
    assert summary.below_minimum


@pytest.mark.anyio
async def test_zero_retries_returns_first_draft():
    client = FakeCompletionClient(default="short")
    controller = RetryController(client)

    summary = await controller.run("source", make_options(min_words=10, expand_retries=0))

    assert len(client.calls) == 1
    assert summary.below_minimum


@pytest.mark.anyio
async def test_empty_expansion_keeps_previous_draft():
    client = FakeCompletionClient(["a short draft", ""])
    controller = RetryController(client)

    summary = await controller.run("source", make_options(min_words=10))

    assert summary.text == "a short draft"
    assert summary.passes == 2


@pytest.mark.anyio
async def test_overlong_expansion_is_trimmed():
    client = FakeCompletionClient(["tiny", words(50)])
    controller = RetryController(client)

    summary = await controller.run("source", make_options(min_words=10, max_words=20))

    assert summary.word_count == 20
    assert summary.text == words(20)


@pytest.mark.anyio
async def test_fixed_line_shape_has_exact_line_count():
    raw = "1. First idea here\n2. Second idea\n- third one\n" + words(30)
    client = FakeCompletionClient([raw])
    controller = RetryController(client)

    summary = await controller.run(
        "source", make_options(min_words=5, max_words=24, line_count=8)
    )

    assert summary.line_count == 8
    assert count_lines(summary.text) == 8
    assert summary.word_count == 24
    assert "1." not in summary.text and "-" not in summary.text


@pytest.mark.anyio
async def test_empty_completion_raises_transient_error():
    client = FakeCompletionClient(default="")
    controller = RetryController(client)

    with pytest.raises(UpstreamTransientError):
        await controller.run("source", make_options(min_words=5))
    assert len(client.calls) == 2


@pytest.mark.anyio
async def test_upstream_failure_aborts_run():
    client = FakeCompletionClient(["short", UpstreamQuotaError("no credits")])
    controller = RetryController(client)

    with pytest.raises(UpstreamQuotaError):
        await controller.run("source", make_options(min_words=10))


def test_enforce_budget_paragraph_strips_enumeration():
    constraints = SummaryConstraints(min_words=1, max_words=20)
    assert enforce_budget("1. First point\n2. Second point", constraints) == (
        "First point Second point"
    )


def test_enforce_budget_caps_words():
    constraints = SummaryConstraints(min_words=1, max_words=5)
    assert count_words(enforce_budget(words(40), constraints)) == 5
