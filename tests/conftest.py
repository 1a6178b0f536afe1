"""Shared fixtures: synthetic Claude session logs."""

import json

import pytest


def _dump(entry):
    return json.dumps(entry, separators=(",", ":"))


def build_session_lines(turns):
    """
    Build a session log from (user text, cumulative tokens) pairs.

    Each turn takes three lines: the user turn, the assistant reply
    carrying the usage counters, and a tool result. Turn k therefore
    starts at line 3k + 1. Every entry links to the previous one.
    """
    lines = []
    previous = None
    for k, (text, tokens) in enumerate(turns):
        user = {
            "parentUuid": previous,
            "type": "user",
            "message": {"role": "user", "content": text},
            "uuid": f"u{k}"
        }
        assistant = {
            "parentUuid": f"u{k}",
            "type": "assistant",
            "message": {
                "role": "assistant",
                "content": [{"type": "text", "text": f"reply {k}"}],
                "usage": {
                    "input_tokens": 4,
                    "cache_creation_input_tokens": 0,
                    "cache_read_input_tokens": tokens,
                    "output_tokens": 12
                }
            },
            "uuid": f"a{k}"
        }
        tool = {
            "parentUuid": f"a{k}",
            "type": "user",
            "message": {
                "role": "user",
                "content": [{"type": "tool_result", "tool_use_id": f"tool{k}", "content": "ok"}]
            },
            "uuid": f"t{k}"
        }
        lines.extend([_dump(user), _dump(assistant), _dump(tool)])
        previous = f"t{k}"
    return lines


@pytest.fixture
def session_lines():
    """Factory for synthetic session logs."""
    return build_session_lines


@pytest.fixture
def ten_turn_lines():
    """Ten turns growing by 10,000 tokens each (current total 100,000)."""
    topics = [
        "setup project scaffolding",
        "configure database migrations",
        "write parser tokenizer",
        "parser tokenizer network socket",
        "refactor logging handlers",
        "tweak color palette",
        "update readme badges",
        "parser tokenizer edge cases",
        "parser tokenizer error recovery",
        "parser tokenizer unicode handling",
    ]
    return build_session_lines([(text, (k + 1) * 10000) for k, text in enumerate(topics)])
