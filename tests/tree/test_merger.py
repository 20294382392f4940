import asyncio

import pytest

from chat_ai.streaming import FragmentStream
from chat_ai.types import CostBreakdown, TextPart
from chat_tree.merger import PENDING_TEXT, STOPPED_TEXT, MergeState, StreamingMerger, placeholder_parts
from chat_tree.serialization import export_tree, import_tree
from chat_tree.tree import ConversationTree

from tests.helpers import image, text


def _placeholder():
    tree = ConversationTree()
    user = tree.add_message("user", text("hi"))
    node = tree.add_message("model", placeholder_parts(), user.id)
    assert node.content[0].text == PENDING_TEXT
    return tree, node


def test_text_fragments_merge_into_one_part():
    _, node = _placeholder()
    merger = StreamingMerger(node)
    for chunk in ("A", "B", "C"):
        merger.add_fragment(TextPart(text=chunk))
    merger.complete()
    assert [part.model_dump() for part in node.content] == [{"type": "text", "text": "ABC"}]
    assert node.received_chars == 3
    assert merger.state is MergeState.COMPLETED


def test_attachments_never_merge():
    _, node = _placeholder()
    merger = StreamingMerger(node)
    merger.add_fragment(TextPart(text="look"))
    merger.add_fragment(image("a"))
    merger.add_fragment(image("b"))
    merger.add_fragment(TextPart(text="done"))
    merger.add_fragment(TextPart(text="!"))
    assert [part.type for part in node.content] == ["text", "inline_data", "inline_data", "text"]
    assert node.content[-1].text == "done!"


def test_visible_through_tree_handle_while_streaming():
    tree, node = _placeholder()
    merger = StreamingMerger(node)
    merger.add_fragment(TextPart(text="partial"))
    assert merger.state is MergeState.STREAMING
    assert tree.linear_path()[-1].text() == "partial"


def test_complete_records_usage_and_cost():
    _, node = _placeholder()

    def pricing(model, input_tokens, output_tokens):
        assert model == "m"
        return CostBreakdown(input_cost=input_tokens * 0.5, output_cost=output_tokens * 2.0)

    merger = StreamingMerger(node, pricing_fn=pricing)
    merger.add_fragment(TextPart(text="ok"))
    merger.complete(input_tokens=4, output_tokens=3, model="m")
    assert node.input_tokens == 4
    assert node.output_tokens == 3
    assert node.input_cost == 2.0
    assert node.output_cost == 6.0


def test_complete_unknown_model_costs_nothing():
    _, node = _placeholder()
    merger = StreamingMerger(node)
    merger.add_fragment(TextPart(text="ok"))
    merger.complete(input_tokens=100, output_tokens=100, model="not-a-model")
    assert node.input_cost == 0.0
    assert node.output_cost == 0.0


def test_abort_before_any_fragment_replaces_placeholder():
    _, node = _placeholder()
    merger = StreamingMerger(node)
    merger.abort()
    assert node.text() == STOPPED_TEXT
    assert merger.state is MergeState.ABORTED


def test_abort_appends_to_trailing_text():
    _, node = _placeholder()
    merger = StreamingMerger(node)
    merger.add_fragment(TextPart(text="half"))
    merger.abort()
    assert node.text() == "half\n\n" + STOPPED_TEXT
    assert len(node.content) == 1
    assert node.received_chars == len(node.text())


def test_received_chars_survive_export_round_trip():
    tree, node = _placeholder()
    merger = StreamingMerger(node)
    merger.add_fragment(TextPart(text="partial"))
    merger.abort()

    restored = ConversationTree()
    import_tree(restored, export_tree(tree))
    assert restored.get(node.id).received_chars == node.received_chars


def test_fail_counts_error_text():
    _, node = _placeholder()
    merger = StreamingMerger(node)
    merger.fail("boom")
    assert node.received_chars == len("**Error:** boom")


def test_abort_after_attachment_adds_text_part():
    _, node = _placeholder()
    merger = StreamingMerger(node)
    merger.add_fragment(image())
    merger.abort()
    assert [part.type for part in node.content] == ["inline_data", "text"]
    assert node.content[-1].text == STOPPED_TEXT


def test_fail_discards_partial_content():
    _, node = _placeholder()
    merger = StreamingMerger(node)
    merger.add_fragment(TextPart(text="partial"))
    merger.add_fragment(image())
    merger.fail("quota exceeded")
    assert len(node.content) == 1
    assert node.text() == "**Error:** quota exceeded"
    assert merger.state is MergeState.FAILED


def test_terminal_state_ignores_further_input():
    _, node = _placeholder()
    merger = StreamingMerger(node)
    merger.add_fragment(TextPart(text="x"))
    merger.complete()
    merger.add_fragment(TextPart(text="y"))
    merger.abort()
    merger.fail("late")
    assert node.text() == "x"
    assert merger.state is MergeState.COMPLETED


@pytest.mark.asyncio
async def test_consume_done_stream():
    _, node = _placeholder()
    stream = FragmentStream()
    for chunk in ("A", "B", "C"):
        stream.push({"type": "fragment", "part": TextPart(text=chunk)})
    stream.push({"type": "usage", "input_tokens": 1000, "output_tokens": 2000})
    stream.push({"type": "done"})
    stream.end()

    state = await StreamingMerger(node).consume(stream, model="gemini-2.5-flash")
    assert state is MergeState.COMPLETED
    assert node.text() == "ABC"
    assert node.input_tokens == 1000
    assert node.output_tokens == 2000
    assert node.input_cost == pytest.approx(1000 * 0.30 / 1_000_000)
    assert node.output_cost == pytest.approx(2000 * 2.50 / 1_000_000)


@pytest.mark.asyncio
async def test_consume_error_event_fails():
    _, node = _placeholder()
    stream = FragmentStream()
    stream.push({"type": "fragment", "part": TextPart(text="A")})
    stream.push({"type": "error", "reason": "error", "message": "HTTP Error: 500"})
    stream.end()

    state = await StreamingMerger(node).consume(stream)
    assert state is MergeState.FAILED
    assert node.text() == "**Error:** HTTP Error: 500"


@pytest.mark.asyncio
async def test_consume_aborted_event():
    _, node = _placeholder()
    stream = FragmentStream()
    stream.push({"type": "fragment", "part": TextPart(text="A")})
    stream.push({"type": "error", "reason": "aborted", "message": "Request was aborted"})
    stream.end()

    state = await StreamingMerger(node).consume(stream)
    assert state is MergeState.ABORTED
    assert node.text() == "A\n\n" + STOPPED_TEXT


@pytest.mark.asyncio
async def test_consume_stops_delivering_after_signal():
    _, node = _placeholder()
    stream = FragmentStream()
    signal = asyncio.Event()
    merger = StreamingMerger(node)

    async def produce():
        stream.push({"type": "fragment", "part": TextPart(text="first")})
        await asyncio.sleep(0.01)
        signal.set()
        stream.push({"type": "fragment", "part": TextPart(text="second")})
        stream.push({"type": "done"})
        stream.end()

    producer = asyncio.create_task(produce())
    state = await merger.consume(stream, signal)
    await producer
    assert state is MergeState.ABORTED
    assert node.text() == "first\n\n" + STOPPED_TEXT


@pytest.mark.asyncio
async def test_consume_stream_exception_is_recorded():
    _, node = _placeholder()

    class Broken:
        def __aiter__(self):
            return self

        async def __anext__(self):
            raise RuntimeError("connection reset")

    state = await StreamingMerger(node).consume(Broken())
    assert state is MergeState.FAILED
    assert node.text() == "**Error:** connection reset"


@pytest.mark.asyncio
async def test_consume_stream_ending_without_terminal_event_completes():
    _, node = _placeholder()
    stream = FragmentStream()
    stream.end()
    state = await StreamingMerger(node).consume(stream)
    assert state is MergeState.COMPLETED
    assert node.content == [TextPart(text="")]
