"""Tests for agent.stream_processor -- text accumulation, the size cap and tool-call merging.

Run with:
    python -m pytest tests/agent/test_stream_processor.py -v
"""

from types import SimpleNamespace

from agent.stream_processor import (
    StreamProcessor,
    TextDelta,
    ToolCallStarted,
    TruncationNotice,
)
from agent.tool_executor import ToolExecutionResult
from documenter_constants import STREAM_TRUNCATION_NOTICE
from tests.fakes.fake_llm import chunk, fragment


class TestTextHandling:
    def test_deltas_forwarded_and_accumulated(self):
        proc = StreamProcessor([])
        events = proc.process_chunk(chunk("Hello ")) + proc.process_chunk(chunk("world"))
        assert events == [TextDelta("Hello "), TextDelta("world")]
        assert proc.state.accumulated_content == "Hello world"
        assert proc.state.content_size == 11

    def test_size_counted_in_utf8_bytes(self):
        proc = StreamProcessor([])
        proc.process_chunk(chunk("é"))
        assert proc.state.content_size == 2

    def test_cap_stops_accumulation_but_not_forwarding(self):
        proc = StreamProcessor([], max_accumulated_bytes=10)
        events = []
        for piece in ["12345", "67890", "abc", "def"]:
            events.extend(proc.process_chunk(chunk(piece)))

        assert proc.state.accumulated_content == "1234567890"
        assert proc.state.content_size == 10
        # Every delta reaches the caller unchanged, with a single notice
        assert [e.delta for e in events if isinstance(e, TextDelta)] == ["12345", "67890", "abc", "def"]
        notices = [e for e in events if isinstance(e, TruncationNotice)]
        assert len(notices) == 1
        assert notices[0].message == STREAM_TRUNCATION_NOTICE
        assert events.index(notices[0]) == 2

    def test_small_delta_after_cap_not_accumulated(self):
        proc = StreamProcessor([], max_accumulated_bytes=5)
        proc.process_chunk(chunk("1234"))
        proc.process_chunk(chunk("56"))
        proc.process_chunk(chunk("7"))
        assert proc.state.accumulated_content == "1234"
        assert proc.state.truncation_notified is True

    def test_chunk_without_choices_ignored(self):
        proc = StreamProcessor([])
        assert proc.process_chunk(SimpleNamespace(choices=[])) == []

    def test_event_types(self):
        assert TextDelta("x").type == "text_delta"
        assert TruncationNotice().type == "truncation_notice"


class TestToolCallMerging:
    def test_fragments_merged_by_index(self):
        proc = StreamProcessor([])
        events = []
        events += proc.process_chunk(chunk(tool_calls=[fragment(0, "call_a", "read_file", '{"file_')]))
        events += proc.process_chunk(chunk(tool_calls=[fragment(0, arguments='path": "a.py"}')]))
        events += proc.process_chunk(chunk(tool_calls=[fragment(1, "call_b", "list_directory", "{}")]))
        events += proc.process_chunk(chunk(finish_reason="tool_calls"))

        assert events == [
            ToolCallStarted(call_id="call_a", name="read_file", index=0),
            ToolCallStarted(call_id="call_b", name="list_directory", index=1),
        ]
        requests = proc.tool_call_requests()
        assert [(r.call_id, r.name, r.arguments) for r in requests] == [
            ("call_a", "read_file", '{"file_path": "a.py"}'),
            ("call_b", "list_directory", "{}"),
        ]
        assert proc.wants_tools is True

    def test_late_id_and_name(self):
        proc = StreamProcessor([])
        first = proc.process_chunk(chunk(tool_calls=[fragment(0, arguments="{")]))
        second = proc.process_chunk(chunk(tool_calls=[fragment(0, "call_x", "write_file", "}")]))

        # Started waits for the id so it pairs with the completion event
        assert first == []
        assert second == [ToolCallStarted(call_id="call_x", name="write_file", index=0)]
        assert proc.unannounced_calls() == []
        request = proc.tool_call_requests()[0]
        assert (request.call_id, request.name, request.arguments) == ("call_x", "write_file", "{}")

    def test_missing_arguments_default_to_empty_object(self):
        proc = StreamProcessor([])
        proc.process_chunk(chunk(tool_calls=[fragment(0, "c", "analyze_project")]))
        assert proc.tool_call_requests()[0].arguments == "{}"

    def test_fragment_without_index_skipped(self):
        proc = StreamProcessor([])
        proc.process_chunk(chunk(tool_calls=[SimpleNamespace(index=None, id="x", function=None)]))
        assert proc.state.tool_calls == {}

    def test_stop_reason_means_no_tools(self):
        proc = StreamProcessor([])
        proc.process_chunk(chunk("done", finish_reason="stop"))
        assert proc.wants_tools is False
        assert proc.state.finish_reason == "stop"

    def test_tool_calls_reason_without_calls(self):
        proc = StreamProcessor([])
        proc.process_chunk(chunk(finish_reason="tool_calls"))
        assert proc.wants_tools is False


class TestAssistantMessage:
    def test_text_only(self):
        proc = StreamProcessor([])
        proc.process_chunk(chunk("Let me look."))
        assert proc.assistant_message() == {"role": "assistant", "content": "Let me look."}

    def test_tool_calls_without_text(self):
        proc = StreamProcessor([])
        proc.process_chunk(chunk(tool_calls=[fragment(0, "call_a", "read_file", '{"file_path": "a"}')]))
        message = proc.assistant_message()
        assert message["content"] is None
        assert message["tool_calls"] == [{
            "id": "call_a",
            "type": "function",
            "function": {"name": "read_file", "arguments": '{"file_path": "a"}'},
        }]

    def test_records_extend_the_live_conversation(self):
        conversation = [{"role": "user", "content": "hi"}]
        proc = StreamProcessor(conversation)
        proc.process_chunk(chunk(tool_calls=[fragment(0, "call_a", "read_file", "{}")]))
        proc.record_tool_round([ToolExecutionResult(call_id="call_a", name="read_file", content='{"success": true}', success=True)])

        assert proc.state.messages is conversation
        assert [m["role"] for m in conversation] == ["user", "assistant", "tool"]
        assert conversation[1]["tool_calls"][0]["id"] == "call_a"
        assert conversation[2]["tool_call_id"] == "call_a"

    def test_record_final(self):
        conversation = []
        proc = StreamProcessor(conversation)
        proc.process_chunk(chunk("All done."))
        assert proc.record_final() == "All done."
        assert conversation == [{"role": "assistant", "content": "All done."}]


class TestUnannouncedCalls:
    def test_call_without_id_announced_with_empty_id(self):
        proc = StreamProcessor([])
        events = proc.process_chunk(chunk(tool_calls=[fragment(0, name="list_directory", arguments="{}")]))
        assert events == []
        assert proc.unannounced_calls() == [ToolCallStarted(call_id="", name="list_directory", index=0)]
        # Only once
        assert proc.unannounced_calls() == []
