import anyio
import pytest

from conftest import FakeCompletionClient, make_options

from app.summarizer.bulk import BulkDispatcher
from app.summarizer.errors import InputError, UpstreamTransientError
from app.summarizer.models import BatchItem
from app.summarizer.service import SummarizerService


def _echo_responder(system_prompt, user):
    # six words derived from the source so distinct inputs give distinct summaries
    return f"summary of {user[0]} with padding words"


@pytest.mark.anyio
async def test_identical_items_share_one_pipeline_run():
    client = FakeCompletionClient(responder=_echo_responder)
    service = SummarizerService(make_options(), client)
    items = [
        BatchItem(id="1", text="Shared text"),
        BatchItem(id="2", text="Different text"),
        BatchItem(id="3", text="  Shared   text "),
    ]

    summaries = await service.summarize_batch(items)

    assert len(client.calls) == 2
    assert set(summaries) == {"1", "2", "3"}
    assert summaries["1"].text == summaries["3"].text
    assert summaries["1"].text != summaries["2"].text


@pytest.mark.anyio
async def test_unusable_items_are_skipped():
    client = FakeCompletionClient(responder=_echo_responder)
    service = SummarizerService(make_options(), client)
    items = [
        BatchItem(id="ok", text="real text"),
        BatchItem(id="blank", text="   "),
        BatchItem(id=None, text="orphan text"),
        BatchItem(id="", text="nameless"),
        BatchItem(id="missing", text=None),
    ]

    summaries = await service.summarize_batch(items)

    assert list(summaries) == ["ok"]
    assert len(client.calls) == 1


@pytest.mark.anyio
async def test_failed_group_does_not_abort_siblings():
    def _responder(system_prompt, user):
        if "broken" in user[0]:
            raise UpstreamTransientError("upstream down")
        return _echo_responder(system_prompt, user)

    client = FakeCompletionClient(responder=_responder)
    service = SummarizerService(make_options(), client)
    items = [
        BatchItem(id="a", text="fine one"),
        BatchItem(id="b", text="broken one"),
        BatchItem(id="c", text="fine two"),
    ]

    summaries = await service.summarize_batch(items)

    assert set(summaries) == {"a", "c"}


@pytest.mark.anyio
async def test_concurrency_ceiling_is_respected():
    client = FakeCompletionClient(responder=_echo_responder, delay=0.02)
    service = SummarizerService(
        make_options(), client, dispatcher=BulkDispatcher(concurrency=2)
    )
    items = [BatchItem(id=str(index), text=f"text number {index}") for index in range(7)]

    summaries = await service.summarize_batch(items)

    assert len(summaries) == 7
    assert len(client.calls) == 7
    assert client.max_active <= 2
    assert service.dispatcher.active == 0


@pytest.mark.anyio
async def test_batch_size_limit():
    client = FakeCompletionClient(responder=_echo_responder)
    service = SummarizerService(make_options(), client, bulk_max_items=2)
    items = [BatchItem(id=str(index), text="x") for index in range(3)]

    with pytest.raises(InputError):
        await service.summarize_batch(items)
    assert client.calls == []


def test_dispatcher_rejects_zero_concurrency():
    with pytest.raises(ValueError):
        BulkDispatcher(concurrency=0)


@pytest.mark.anyio
async def test_unexpected_error_is_contained_to_its_group():
    def _responder(system_prompt, user):
        if "broken" in user[0]:
            raise RuntimeError("unexpected")
        return _echo_responder(system_prompt, user)

    client = FakeCompletionClient(responder=_responder)
    service = SummarizerService(make_options(), client)
    items = [
        BatchItem(id="a", text="fine one"),
        BatchItem(id="b", text="broken one"),
    ]

    summaries = await service.summarize_batch(items)

    assert set(summaries) == {"a"}
    assert service.cache.in_flight_count() == 0


@pytest.mark.anyio
async def test_cached_group_does_not_need_a_slot():
    client = FakeCompletionClient(responder=_echo_responder)
    service = SummarizerService(
        make_options(), client, dispatcher=BulkDispatcher(concurrency=1)
    )
    warm = await service.summarize("already seen")
    client.calls.clear()

    async with service.dispatcher.limiter:
        with anyio.fail_after(1):
            summaries = await service.summarize_batch(
                [BatchItem(id="x", text="already seen")]
            )

    assert summaries["x"] == warm
    assert client.calls == []
