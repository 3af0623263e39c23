"""LLM call helpers for the chat assistant."""

import logging
from functools import lru_cache
from typing import Any

from anthropic import NOT_GIVEN, AsyncAnthropic
from anthropic.types import Message
from dotenv import load_dotenv

from pubmed_assistant.config import get_settings

load_dotenv()

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a helpful PubMed search assistant that helps users find medical literature.
Follow this workflow:
1. When the user asks to search for medical literature, use the searchPubMedWithQuery tool.
2. After showing search results, ask if they want to refine the search to get more results, fewer results, or keep the current results.
3. Based on their response, use the refinePubMedSearch tool with the appropriate refinementType ("increase" for more results, "decrease" for fewer, "keep" to stay), passing the meshTerms of the previous result as previousMeshTerms.
4. Continue this process until the user is satisfied with the results.

When presenting search results:
- Show the total number of papers found
- List the representative papers with title, authors, journal, and publication date
- Include a brief description of each paper based on its abstract
- Format the results in a readable way with numbering

Be conversational, helpful, and knowledgeable about medical research."""


@lru_cache
def get_client() -> AsyncAnthropic:
    api_key = get_settings().anthropic_api_key or None
    return AsyncAnthropic(api_key=api_key)


async def create_message(
    messages: list[dict[str, Any]],
    tools: list[dict[str, Any]] | None = None,
    system: str = SYSTEM_PROMPT,
) -> Message:
    settings = get_settings()
    response = await get_client().messages.create(
        model=settings.llm_model,
        max_tokens=settings.llm_max_tokens,
        system=system or NOT_GIVEN,
        messages=messages,
        tools=tools or NOT_GIVEN,
    )
    logger.debug(
        "LLM stop_reason=%s blocks=%d", response.stop_reason, len(response.content)
    )
    return response


def response_text(response: Message) -> str:
    """Concatenate the text blocks of a response."""
    return "".join(block.text for block in response.content if block.type == "text")


def content_to_params(response: Message) -> list[dict[str, Any]]:
    """Turn response blocks into request-side content for the history."""
    params: list[dict[str, Any]] = []
    for block in response.content:
        if block.type == "text" and block.text:
            params.append({"type": "text", "text": block.text})
        elif block.type == "tool_use":
            params.append(
                {
                    "type": "tool_use",
                    "id": block.id,
                    "name": block.name,
                    "input": block.input,
                }
            )
    return params
