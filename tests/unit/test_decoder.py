"""Unit tests for the streaming decoder."""

import logging

import pytest
import pytest_check as check

from localchat.streaming.decoder import StreamDecoder, estimate_tokens, split_reasoning
from tests.helpers import FakeClock, frame, sse


def decode(*chunks: bytes | str) -> tuple[StreamDecoder, list]:
    decoder = StreamDecoder(clock=FakeClock())
    updates = []
    for chunk in chunks:
        updates.extend(decoder.feed(chunk))
    updates.extend(decoder.finish())
    return decoder, updates


class TestFraming:
    """Tests for line buffering and frame parsing."""

    def test_concatenates_fragments(self) -> None:
        """Plain fragments are appended in order."""
        decoder, updates = decode(sse("Hel", "lo", " world"))

        check.equal(decoder.content, "Hello world")
        check.equal(updates[-1].content, "Hello world")
        check.is_true(updates[-1].done)

    def test_frame_split_across_chunks(self) -> None:
        """A line split between two chunks is parsed once complete."""
        line = frame("Hello")
        decoder = StreamDecoder(clock=FakeClock())

        check.equal(decoder.feed(line[:12]), [])
        updates = decoder.feed(line[12:])

        check.equal(len(updates), 1)
        check.equal(updates[0].content, "Hello")

    def test_multibyte_character_split_across_chunks(self) -> None:
        """UTF-8 sequences split between chunks decode intact."""
        body = sse("café")
        index = body.index("é".encode()) + 1

        decoder, _ = decode(body[:index], body[index:])

        check.equal(decoder.content, "café")

    def test_malformed_line_is_skipped(self, caplog: pytest.LogCaptureFixture) -> None:
        """An invalid frame is logged and decoding continues."""
        with caplog.at_level(logging.ERROR):
            decoder, _ = decode(frame("Hel"), "data: {not json\n", frame("lo"))

        check.equal(decoder.content, "Hello")
        check.is_in("Error parsing streaming response", caplog.text)

    def test_done_and_blank_lines_are_ignored(self) -> None:
        """The DONE sentinel and empty lines produce no updates."""
        decoder = StreamDecoder(clock=FakeClock())

        check.equal(decoder.feed("\n\ndata: [DONE]\n"), [])
        check.equal(decoder.content, "")

    def test_accepts_prefix_without_space(self) -> None:
        """``data:`` directly followed by JSON is accepted."""
        decoder, _ = decode('data:{"choices":[{"delta":{"content":"ok"}}]}\n')

        check.equal(decoder.content, "ok")

    def test_empty_delta_produces_no_update(self) -> None:
        """Frames without content text do not emit updates."""
        decoder = StreamDecoder(clock=FakeClock())

        check.equal(decoder.feed(frame(None) + frame("")), [])

    def test_incomplete_trailing_line_is_dropped(self) -> None:
        """A final line without newline is discarded at stream end."""
        decoder, _ = decode(frame("a") + frame("b").rstrip("\n"))

        check.equal(decoder.content, "a")

    def test_feed_after_finish_raises(self) -> None:
        """A finished decoder refuses further input."""
        decoder, _ = decode(sse("a"))

        with pytest.raises(RuntimeError, match="finished"):
            decoder.feed(frame("b"))

    def test_finish_is_idempotent(self) -> None:
        """Only the first ``finish`` emits updates."""
        decoder, _ = decode(sse("a"))

        check.equal(decoder.finish(), [])


class TestReasoning:
    """Tests for reasoning section tracking."""

    def test_marker_in_its_own_fragment(self) -> None:
        """Open marker alone, then reasoning, close marker and answer."""
        decoder, _ = decode(frame("<think>"), frame("reasoning text</think>answer"))

        check.equal(decoder.content, "<think>reasoning text</think>answer")
        check.equal(decoder.reasoning, "reasoning text")
        check.is_false(decoder.in_reasoning)

    def test_visible_buffer_mirrors_reasoning_live(self) -> None:
        """While inside the section the buffer grows with the reasoning."""
        decoder = StreamDecoder(clock=FakeClock())
        decoder.feed(frame("Sure. <think>step one"))
        updates = decoder.feed(frame(", step two"))

        check.equal(updates[0].content, "Sure. <think>step one, step two")
        check.equal(updates[0].reasoning, "step one, step two")
        check.is_true(decoder.in_reasoning)

    def test_unclosed_section_gets_synthesized_close(self) -> None:
        """Stream end inside a section appends a close marker."""
        decoder = StreamDecoder(clock=FakeClock())
        decoder.feed(frame("<think>still thinking"))
        updates = decoder.finish()

        check.equal(len(updates), 2)
        check.equal(updates[0].content, "<think>still thinking</think>")
        check.is_false(updates[0].done)
        check.equal(updates[1].content, "<think>still thinking</think>")
        check.is_true(updates[1].done)

    def test_closed_stream_emits_only_final_snapshot(self) -> None:
        """Without an open section ``finish`` emits one done update."""
        decoder = StreamDecoder(clock=FakeClock())
        decoder.feed(frame("answer"))

        updates = decoder.finish()

        check.equal(len(updates), 1)
        check.is_true(updates[0].done)

    def test_both_markers_in_one_fragment(self) -> None:
        """Markers in the same fragment are handled left to right."""
        decoder, _ = decode(frame("<think>a</think>b"))

        check.equal(decoder.content, "<think>a</think>b")
        check.equal(decoder.reasoning, "a")

    def test_markers_split_across_fragments(self) -> None:
        """Partial markers are held back until completed."""
        decoder, _ = decode(
            frame("<thi"), frame("nk>plan</th"), frame("ink"), frame(">done")
        )

        check.equal(decoder.content, "<think>plan</think>done")
        check.equal(decoder.reasoning, "plan")

    def test_held_partial_marker_is_not_visible_yet(self) -> None:
        """A possible marker start is withheld from the update."""
        decoder = StreamDecoder(clock=FakeClock())

        updates = decoder.feed(frame("1 <"))

        check.equal(updates[0].content, "1 ")

    def test_unresolved_partial_marker_flushed_at_end(self) -> None:
        """A withheld marker start turns out to be text."""
        decoder, updates = decode(frame("1 <"), frame(" 2"))

        check.equal(decoder.content, "1 < 2")
        check.equal(updates[-1].content, "1 < 2")

    def test_partial_marker_flushed_at_stream_end(self) -> None:
        """Text held back at stream end becomes visible."""
        decoder, _ = decode(frame("a <th"))

        check.equal(decoder.content, "a <th")

    def test_stray_close_marker_is_text(self) -> None:
        """A close marker outside a section is kept literally."""
        decoder, _ = decode(frame("x</think>y"))

        check.equal(decoder.content, "x</think>y")
        check.equal(decoder.reasoning, "")

    def test_second_section_starts_fresh(self) -> None:
        """A later section keeps the earlier text in the buffer."""
        decoder, _ = decode(frame("<think>a</think>b"), frame("<think>c"))

        check.equal(decoder.content, "<think>a</think>b<think>c</think>")
        check.equal(decoder.reasoning, "c")


class TestMetrics:
    """Tests for token and throughput metrics."""

    def test_tokens_rounded_per_fragment(self) -> None:
        """Each fragment is rounded up on its own."""
        decoder, _ = decode(frame("abcde"), frame("fg"))

        check.equal(decoder.token_count, 3)
        check.equal(estimate_tokens("abcdefg"), 2)

    def test_empty_fragment_costs_nothing(self) -> None:
        check.equal(estimate_tokens(""), 0)

    def test_throughput_from_clock(self) -> None:
        """tokens/sec and elapsed time come from the injected clock."""
        clock = FakeClock(100.0)
        decoder = StreamDecoder(clock=clock)
        clock.advance(2.0)

        update = decoder.feed(frame("abcdefgh"))[0]

        check.equal(update.token_count, 2)
        check.equal(update.tokens_per_second, 1.0)
        check.equal(update.generation_time_seconds, 2.0)

    def test_zero_elapsed_time(self) -> None:
        """No division by zero when no time has passed."""
        decoder = StreamDecoder(clock=FakeClock())

        update = decoder.feed(frame("abcd"))[0]

        check.equal(update.tokens_per_second, 0.0)

    def test_metrics_rounded_to_two_decimals(self) -> None:
        clock = FakeClock()
        decoder = StreamDecoder(clock=clock)
        clock.advance(3.0)

        update = decoder.feed(frame("a"))[0]

        check.equal(update.tokens_per_second, 0.33)


class TestAsyncIteration:
    """Tests for decoding an async byte stream."""

    async def test_yields_updates_then_final_snapshot(self) -> None:
        """Updates arrive per fragment, followed by the done snapshot."""

        async def chunks():
            yield frame("Hi").encode()
            yield frame(" there").encode()

        decoder = StreamDecoder(clock=FakeClock())
        updates = [update async for update in decoder.aiter_updates(chunks())]

        check.equal([u.content for u in updates], ["Hi", "Hi there", "Hi there"])
        check.equal([u.done for u in updates], [False, False, True])


class TestSplitReasoning:
    """Tests for separating reasoning from the answer for display."""

    def test_closed_section(self) -> None:
        check.equal(split_reasoning("<think> why </think>because"), ("why", "because"))

    def test_open_section(self) -> None:
        """Everything after an unclosed marker is reasoning."""
        check.equal(split_reasoning("<think>partial"), ("partial", ""))

    def test_no_section(self) -> None:
        check.equal(split_reasoning("plain answer"), ("", "plain answer"))
