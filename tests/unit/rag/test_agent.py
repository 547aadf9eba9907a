"""Tests for the tool-calling agent loop."""

from __future__ import annotations

import json
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from ragkit.errors import ToolError
from ragkit.rag.agent import run_agent
from ragkit.rag.tools import ToolContext


def _message(content=None, tool_calls=None):
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _call(call_id: str, name: str, arguments: dict) -> SimpleNamespace:
    return SimpleNamespace(
        id=call_id,
        function=SimpleNamespace(name=name, arguments=json.dumps(arguments)),
    )


@pytest.fixture
def ctx(store, fake_embedder):
    store.create_index("workshop", 3)
    store.upsert("workshop", [[1.0, 0.0, 0.0]], [{"text": "Use JWT tokens."}])
    fake_embedder.table["auth"] = [1.0, 0.0, 0.0]
    return ToolContext(store=store, embedder=fake_embedder)


def test_agent_answers_without_tools(ctx):
    with patch("ragkit.rag.llm_client.litellm.completion", return_value=_message("Hello")):
        assert run_agent("hi", ctx) == "Hello"


def test_agent_runs_tool_then_answers(ctx):
    responses = [
        _message(tool_calls=[_call("c1", "basic_search", {"query": "auth"})]),
        _message("Use JWT tokens."),
    ]
    with patch(
        "ragkit.rag.llm_client.litellm.completion", side_effect=responses
    ) as mock_c:
        answer = run_agent("How do I authenticate?", ctx, model="openai/gpt-4o-mini")

    assert answer == "Use JWT tokens."
    second_messages = mock_c.call_args_list[1].kwargs["messages"]
    tool_message = second_messages[-1]
    assert tool_message["role"] == "tool"
    assert tool_message["tool_call_id"] == "c1"
    assert json.loads(tool_message["content"])[0]["text"] == "Use JWT tokens."
    assert second_messages[-2]["tool_calls"][0]["function"]["name"] == "basic_search"
    assert mock_c.call_args.kwargs["tools"]


def test_agent_returns_tool_errors_to_model(ctx):
    responses = [
        _message(tool_calls=[_call("c1", "query_vector", {"query": "auth", "filter": {"$bad": 1}})]),
        _message("Sorry."),
    ]
    with patch(
        "ragkit.rag.llm_client.litellm.completion", side_effect=responses
    ) as mock_c:
        assert run_agent("q", ctx) == "Sorry."

    payload = json.loads(mock_c.call_args_list[1].kwargs["messages"][-1]["content"])
    assert payload["error"]["kind"] == "invalid_filter"


def test_agent_stops_after_max_steps(ctx):
    looping = _message(tool_calls=[_call("c1", "basic_search", {"query": "auth"})])
    with patch("ragkit.rag.llm_client.litellm.completion", return_value=looping) as mock_c:
        with pytest.raises(ToolError, match="2 steps"):
            run_agent("q", ctx, max_steps=2)
    assert mock_c.call_count == 2


def test_agent_none_content_is_empty_string(ctx):
    with patch("ragkit.rag.llm_client.litellm.completion", return_value=_message(None)):
        assert run_agent("hi", ctx) == ""
