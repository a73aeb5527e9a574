"""
Tests for types.py: the message union, tool calls and dict round trips.
"""

from __future__ import annotations

import dataclasses

import pytest

from agentcore import (
    AIMessage,
    ContentPart,
    ContentPartType,
    ResourceMessage,
    Role,
    SystemMessage,
    ToolCall,
    ToolMessage,
    UserMessage,
)
from agentcore.types import ToolCallDelta, message_from_dict, messages_to_dicts
from agentcore.usage import UsageStats


class TestMessages:
    def test_roles_are_fixed_by_class(self) -> None:
        assert UserMessage("hi").role is Role.USER
        assert SystemMessage("be brief").role is Role.SYSTEM
        assert AIMessage("hello").role is Role.ASSISTANT
        assert ToolMessage("42", tool_call_id="c1").role is Role.TOOL

    def test_role_cannot_be_passed_or_changed(self) -> None:
        with pytest.raises(TypeError):
            UserMessage("hi", role=Role.SYSTEM)  # type: ignore[call-arg]
        msg = UserMessage("hi")
        with pytest.raises(dataclasses.FrozenInstanceError):
            msg.role = Role.SYSTEM  # type: ignore[misc]

    def test_none_content_becomes_empty_string(self) -> None:
        assert UserMessage(None).content == ""  # type: ignore[arg-type]
        assert AIMessage(None).content == ""  # type: ignore[arg-type]

    def test_tool_calls_are_stored_as_tuple(self) -> None:
        msg = AIMessage("", tool_calls=[ToolCall("c1", "echo")])  # type: ignore[arg-type]
        assert isinstance(msg.tool_calls, tuple)

    def test_text_falls_back_to_first_text_part(self) -> None:
        msg = UserMessage(parts=(ContentPart.from_text("from part"),))
        assert msg.text == "from part"

    def test_resource_message_default_content(self) -> None:
        msg = ResourceMessage(name="report.pdf", mime_type="application/pdf", body=b"%PDF")
        assert msg.content == "resource: report.pdf"
        assert msg.role is Role.USER


class TestToolCall:
    def test_new_generates_id_and_json(self) -> None:
        call = ToolCall.new("echo", {"text": "hi"})
        assert call.id.startswith("call_")
        assert call.parse_arguments() == {"text": "hi"}

    def test_empty_arguments_parse_to_empty_dict(self) -> None:
        assert ToolCall("c1", "noop", "  ").parse_arguments() == {}

    def test_invalid_json_raises_value_error(self) -> None:
        with pytest.raises(ValueError):
            ToolCall("c1", "echo", "{not json").parse_arguments()

    def test_non_object_json_raises_value_error(self) -> None:
        with pytest.raises(ValueError, match="JSON object"):
            ToolCall("c1", "echo", "[1, 2]").parse_arguments()

    def test_deeply_nested_json_raises_value_error(self) -> None:
        with pytest.raises(ValueError, match="nested too deeply"):
            ToolCall("c1", "echo", "[" * 200000).parse_arguments()

    def test_delta_key_prefers_index(self) -> None:
        assert ToolCallDelta(index=2, id="x").key == 2
        assert ToolCallDelta(id="x").key == "x"


class TestContentPart:
    def test_from_image_file(self, tmp_path) -> None:
        image = tmp_path / "chart.png"
        image.write_bytes(b"\x89PNG")
        part = ContentPart.from_image_file(str(image))
        assert part.type == ContentPartType.IMAGE
        assert part.mime_type == "image/png"
        assert part.data == b"\x89PNG"
        assert part.name == "chart.png"

    def test_from_missing_image_file(self, tmp_path) -> None:
        with pytest.raises(FileNotFoundError, match="Image file not found"):
            ContentPart.from_image_file(str(tmp_path / "missing.png"))


class TestMessageFromDict:
    def test_ai_message_round_trip(self) -> None:
        original = AIMessage(
            content="done",
            reasoning="thought",
            tool_calls=(ToolCall("c1", "echo", '{"text": "hi"}'),),
            usage=UsageStats(prompt_tokens=5, completion_tokens=3),
            response_id="resp_1",
            model="gpt-4o",
        )
        restored = message_from_dict(original.to_dict())
        assert restored == original

    def test_tool_message_round_trip(self) -> None:
        original = ToolMessage("boom", tool_call_id="c1", tool_name="echo", is_error=True)
        assert message_from_dict(original.to_dict()) == original

    def test_resource_bytes_survive_round_trip(self) -> None:
        original = ResourceMessage(name="img.png", mime_type="image/png", body=b"\x89PNG")
        restored = message_from_dict(original.to_dict())
        assert isinstance(restored, ResourceMessage)
        assert restored.body == b"\x89PNG"

    def test_image_part_data_is_base64_encoded(self) -> None:
        part = ContentPart(type=ContentPartType.IMAGE, mime_type="image/png", data=b"abc")
        data = UserMessage("look", parts=(part,)).to_dict()
        assert data["parts"][0]["data"] == "YWJj"
        assert message_from_dict(data) == UserMessage("look", parts=(part,))

    def test_role_is_used_when_type_missing(self) -> None:
        assert message_from_dict({"role": "assistant", "content": "x"}) == AIMessage("x")

    def test_messages_to_dicts_round_trip(self) -> None:
        messages = [SystemMessage("be brief"), UserMessage("hi"), AIMessage("hello")]
        data = messages_to_dicts(messages)
        assert [item["type"] for item in data] == ["system", "user", "ai"]
        assert [message_from_dict(item) for item in data] == messages

    def test_unknown_type_raises(self) -> None:
        with pytest.raises(ValueError, match="Unknown message type"):
            message_from_dict({"type": "video-call", "content": ""})
