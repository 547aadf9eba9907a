"""Tool-calling agent loop over the retrieval tools.

The model is offered every tool in ``ragkit.rag.tools.TOOLS``. Each turn it
either answers (no tool calls) or requests tool calls, which are executed and
fed back as ``tool`` messages. Retrieval errors are returned to the model as
``{"error": {...}}`` payloads so it can adjust the call.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from ragkit.errors import RagError, ToolError
from ragkit.rag.llm_client import complete
from ragkit.rag.tools import ToolContext, dispatch, openai_tool_specs

logger = logging.getLogger(__name__)

DEFAULT_INSTRUCTIONS = """\
You are a helpful assistant that answers questions about a documentation set \
and its codebase. Use the search tools to find relevant material before \
answering. Prefer query_vector with a metadata filter (section, type, format) \
when the question names a topic; use find_related_documentation for \
background reading. Use find_code, find_function_definition or \
find_usage_examples for questions about code. Cite the source of every \
snippet you rely on."""


def run_agent(
    prompt: str,
    ctx: ToolContext,
    model: str = "openai/gpt-4o",
    instructions: str = DEFAULT_INSTRUCTIONS,
    max_steps: int = 5,
) -> str:
    """Answer *prompt*, letting *model* call retrieval tools up to *max_steps* times.

    Returns:
        The model's final text answer.

    Raises:
        ToolError: The model kept requesting tools past *max_steps*.
        ExternalServiceError: Completion call failed.
    """
    messages: list[dict[str, Any]] = [
        {"role": "system", "content": instructions},
        {"role": "user", "content": prompt},
    ]
    tools = openai_tool_specs()

    for step in range(max_steps):
        response = complete(model, messages, tools=tools)
        message = response.choices[0].message
        tool_calls = getattr(message, "tool_calls", None) or []
        if not tool_calls:
            return message.content or ""

        messages.append(
            {
                "role": "assistant",
                "content": message.content,
                "tool_calls": [_call_dict(call) for call in tool_calls],
            }
        )
        for call in tool_calls:
            messages.append(
                {
                    "role": "tool",
                    "tool_call_id": call.id,
                    "content": json.dumps(_run_tool(call, ctx), default=str),
                }
            )
        logger.debug("Agent step %d ran %d tool call(s)", step + 1, len(tool_calls))

    raise ToolError(f"Agent did not produce an answer within {max_steps} steps")


def _run_tool(call: Any, ctx: ToolContext) -> Any:
    name = call.function.name
    try:
        return dispatch(name, call.function.arguments, ctx)
    except RagError as exc:
        logger.warning("Tool %s failed: %s", name, exc)
        return {"error": exc.to_dict()}


def _call_dict(call: Any) -> dict[str, Any]:
    return {
        "id": call.id,
        "type": "function",
        "function": {"name": call.function.name, "arguments": call.function.arguments},
    }
