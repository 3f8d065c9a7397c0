"""Tests for envelope builders and frame encoding."""

import json
import time

import pytest

from polaris_rest.models import BroadcastEnvelope, User, default_user
from polaris_rest.transport.envelopes import (
    build_broadcast,
    build_init,
    build_message,
    build_notify,
    build_ping,
    build_redirect,
    decode_frame,
    encode_frame,
)

USER = default_user()


class TestBuildInit:
    def test_init_wire_shape(self) -> None:
        envelope = build_init(USER, "rest", {"name": "rest"})

        assert envelope.to_wire() == {
            "bot": "restful",
            "platform": "rest",
            "type": "init",
            "user": {
                "id": "rest",
                "firstName": "rest",
                "lastName": None,
                "username": "restful",
                "isBot": True,
            },
            "config": {"name": "rest"},
        }

    def test_ping_wire_shape(self) -> None:
        assert build_ping(USER, "api").to_wire() == {
            "bot": "restful",
            "platform": "api",
            "type": "ping",
        }


class TestBuildMessage:
    def test_defaults(self) -> None:
        before = time.time()
        wire = build_message(USER, "rest", "42", "hi").to_wire()

        assert wire["type"] == "message"
        message = wire["message"]
        assert message["id"] == 0
        assert message["conversation"] == {"id": "42"}
        assert message["sender"]["username"] == "restful"
        assert message["content"] == "hi"
        assert message["type"] == "text"
        assert message["reply"] is None
        assert message["extra"] == {"format": "Markdown"}
        assert before <= message["date"] <= time.time()

    def test_caller_values_pass_through_unvalidated(self) -> None:
        wire = build_message(USER, "rest", "42", "hi", "photo", "not-an-object").to_wire()

        assert wire["message"]["type"] == "photo"
        assert wire["message"]["extra"] == "not-an-object"

    def test_default_extra_is_not_shared(self) -> None:
        first = build_message(USER, "rest", "1", "a")
        second = build_message(USER, "rest", "2", "b")
        assert first.message.extra is not second.message.extra


class TestBuildBroadcast:
    def test_omitted_options_take_defaults(self) -> None:
        wire = build_broadcast(USER, "rest", "42", "hi").to_wire()

        assert wire == {
            "bot": "rest",
            "platform": "rest",
            "type": "broadcast",
            "target": "all",
            "message": {
                "conversation": {"id": "42"},
                "content": "hi",
                "type": "text",
                "extra": {"format": "Markdown"},
            },
        }

    def test_redirect_flag_and_builder_are_equivalent(self) -> None:
        flagged = build_broadcast(USER, "rest", "42", "hi", target="bots", redirect=True)
        redirect = build_redirect(USER, "rest", "42", "hi", target="bots")

        assert isinstance(redirect, BroadcastEnvelope)
        assert flagged.to_wire() == redirect.to_wire()
        assert redirect.type == "redirect"
        assert redirect.target == "bots"
        assert redirect.message.extra == {"format": "Markdown"}

    def test_broadcast_sender_is_user_id(self) -> None:
        user = User(id="gw-1", username="gateway-one")

        assert build_broadcast(user, "rest", "42", "hi").bot == "gw-1"
        assert build_redirect(user, "rest", "42", "hi").bot == "gw-1"
        assert build_message(user, "rest", "42", "hi").bot == "gateway-one"


class TestBuildNotify:
    def test_notify_wire_shape(self) -> None:
        wire = build_notify(USER, "api", "u-1", "polaris", "hello").to_wire()

        assert wire == {
            "bot": "restful",
            "platform": "api",
            "type": "notify",
            "userId": "u-1",
            "personality": "polaris",
            "message": {
                "content": "hello",
                "type": "text",
                "extra": {"format": "Markdown"},
            },
        }


class TestFrameCodec:
    def test_encode_frame_is_json_text(self) -> None:
        envelope = build_ping(USER, "rest")
        frame = encode_frame(envelope)

        assert isinstance(frame, str)
        assert json.loads(frame) == envelope.to_wire()

    def test_decode_frame_accepts_text_and_bytes(self) -> None:
        assert decode_frame('{"a": 1}') == {"a": 1}
        assert decode_frame(b'{"a": 1}') == {"a": 1}

    def test_decode_invalid_frames_raise_value_error(self) -> None:
        with pytest.raises(ValueError):
            decode_frame("not json")
        with pytest.raises(ValueError, match="utf-8"):
            decode_frame(b"\xff\xfe")
