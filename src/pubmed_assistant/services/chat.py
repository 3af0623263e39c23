"""Chat orchestration: one user turn through the LLM and its tool calls."""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from anthropic.types import Message

from pubmed_assistant.config import get_settings
from pubmed_assistant.data_sources.pubmed import PubMedClient
from pubmed_assistant.services.capabilities import (
    execute_capability,
    parse_capability_call,
    tool_definitions,
)
from pubmed_assistant.services.conversation_store import ConversationStore
from pubmed_assistant.services.llm import (
    content_to_params,
    create_message,
    response_text,
)

logger = logging.getLogger(__name__)

LLMCall = Callable[[list[dict[str, Any]], list[dict[str, Any]]], Awaitable[Message]]


class ChatService:
    """Threads a conversation through the LLM and the PubMed capabilities.

    The store is only written once a turn has completed: the user message
    goes in first, and the assistant/tool messages of the turn are appended
    together after every requested capability has succeeded.
    """

    def __init__(
        self,
        store: ConversationStore,
        llm: LLMCall = create_message,
        client_factory: Callable[[], PubMedClient] = PubMedClient,
        max_tool_rounds: int | None = None,
    ):
        self.store = store
        self.llm = llm
        self.client_factory = client_factory
        self.max_tool_rounds = (
            get_settings().max_tool_rounds
            if max_tool_rounds is None
            else max_tool_rounds
        )

    async def handle(self, message: str, conversation_id: str) -> str:
        async with self.store.lock(conversation_id):
            self.store.append(conversation_id, {"role": "user", "content": message})
            history = self.store.get(conversation_id)
            tools = tool_definitions()

            response = await self.llm(history, tools)
            turn: list[dict[str, Any]] = []
            rounds = 0

            while response.stop_reason == "tool_use" and rounds < self.max_tool_rounds:
                tool_uses = [b for b in response.content if b.type == "tool_use"]
                if not tool_uses:
                    break
                results = await self._run_tools(tool_uses)
                exchange = [
                    {"role": "assistant", "content": content_to_params(response)},
                    {"role": "user", "content": results},
                ]
                turn.extend(exchange)
                history.extend(exchange)
                response = await self.llm(history, tools)
                rounds += 1

            if response.stop_reason == "tool_use":
                logger.warning(
                    "Conversation %s hit the tool round limit (%d)",
                    conversation_id,
                    self.max_tool_rounds,
                )

            text = response_text(response)
            if text:
                turn.append({"role": "assistant", "content": text})
            self.store.append(conversation_id, *turn)
            return text

    async def _run_tools(self, tool_uses: list[Any]) -> list[dict[str, Any]]:
        results = []
        async with self.client_factory() as client:
            for block in tool_uses:
                call = parse_capability_call(block.name, block.input)
                result = await execute_capability(call, client)
                results.append(
                    {
                        "type": "tool_result",
                        "tool_use_id": block.id,
                        "content": result.model_dump_json(by_alias=True),
                    }
                )
        return results
