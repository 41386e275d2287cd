"""Structured-output calls to the Anthropic Messages API.

Both oracle prompts (rainfall tables, LLM geocoding) force a single tool call
whose ``input_schema`` is the response schema, then read the tool input back
as a plain dict.
"""

import json
import logging
import re
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import anthropic

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class OracleError(Exception):
    """The oracle call failed or returned nothing parsable."""


def make_client(api_key: str | None) -> anthropic.AsyncAnthropic:
    if not api_key:
        raise OracleError("ANTHROPIC_API_KEY is not set")
    return anthropic.AsyncAnthropic(api_key=api_key)


@asynccontextmanager
async def oracle_session(
    api_key: str | None, client: anthropic.AsyncAnthropic | None = None
) -> AsyncIterator[anthropic.AsyncAnthropic]:
    """Yield ``client`` when given, otherwise a client scoped to this call.

    A client made here is closed on exit and never outlives the running event
    loop.
    """
    if client is not None:
        yield client
        return
    async with make_client(api_key) as scoped:
        yield scoped


def extract_payload(message: Any, tool_name: str) -> dict[str, Any]:
    """Return the forced tool call's input, falling back to a JSON text block.

    Raises:
        OracleError: When no block yields a non-empty JSON object.
    """
    for block in message.content:
        if getattr(block, "type", None) == "tool_use" and block.name == tool_name:
            if isinstance(block.input, dict) and block.input:
                return block.input
    for block in message.content:
        if getattr(block, "type", None) != "text":
            continue
        text = _FENCE.sub("", block.text.strip())
        if not text:
            continue
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict) and data:
            return data
    raise OracleError("oracle returned an empty or non-parsable response")


async def call_tool(
    client: anthropic.AsyncAnthropic,
    *,
    model: str,
    max_tokens: int,
    system: str,
    prompt: str,
    tool: dict[str, Any],
) -> dict[str, Any]:
    """Single Messages API call forcing ``tool``; returns its input dict.

    Raises:
        OracleError: On API/transport failure or an unparsable response.
    """
    logger.info("Calling %s via tool %s", model, tool["name"])
    try:
        message = await client.messages.create(
            model=model,
            max_tokens=max_tokens,
            system=system,
            tools=[tool],
            tool_choice={"type": "tool", "name": tool["name"]},
            messages=[{"role": "user", "content": prompt}],
        )
    except anthropic.APIError as e:
        raise OracleError(f"oracle request failed: {e}") from e
    return extract_payload(message, tool["name"])
