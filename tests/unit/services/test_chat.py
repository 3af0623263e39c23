"""Unit tests for ChatService orchestration."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from pubmed_assistant.data_sources.base_client import RetrievalFailed
from pubmed_assistant.models.model_pubmed import PaperRecord, SearchResult
from pubmed_assistant.services.capabilities import UnknownCapability
from pubmed_assistant.services.chat import ChatService
from pubmed_assistant.services.conversation_store import InMemoryConversationStore


def text_reply(text: str):
    return SimpleNamespace(
        stop_reason="end_turn", content=[SimpleNamespace(type="text", text=text)]
    )


def tool_reply(name: str, arguments: dict, tool_id: str = "toolu_1"):
    return SimpleNamespace(
        stop_reason="tool_use",
        content=[
            SimpleNamespace(type="text", text="Let me search."),
            SimpleNamespace(type="tool_use", id=tool_id, name=name, input=arguments),
        ],
    )


def fake_client_factory(result: SearchResult | Exception):
    client = MagicMock()
    if isinstance(result, Exception):
        client.search = AsyncMock(side_effect=result)
    else:
        client.search = AsyncMock(return_value=result)
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=None)
    return MagicMock(return_value=client), client


@pytest.fixture
def search_result() -> SearchResult:
    return SearchResult(
        mesh_terms="lung+AND+cancer",
        search_url="https://pubmed.ncbi.nlm.nih.gov/?term=lung+AND+cancer",
        total_results=42,
        papers=[PaperRecord(pmid="1", title="Paper 1", abstract="Text")],
    )


class TestChatService:
    async def test_plain_reply_without_tools(self):
        store = InMemoryConversationStore()
        llm = AsyncMock(return_value=text_reply("Hello! What should I search?"))
        factory, _ = fake_client_factory(RuntimeError("unused"))
        service = ChatService(store, llm=llm, client_factory=factory)

        reply = await service.handle("hi", "c1")

        assert reply == "Hello! What should I search?"
        assert store.get("c1") == [
            {"role": "user", "content": "hi"},
            {"role": "assistant", "content": "Hello! What should I search?"},
        ]
        factory.assert_not_called()
        history, tools = llm.call_args.args
        assert history == [{"role": "user", "content": "hi"}]
        assert {t["name"] for t in tools} == {"searchPubMedWithQuery", "refinePubMedSearch"}

    async def test_tool_call_runs_search_and_threads_result(self, search_result):
        store = InMemoryConversationStore()
        llm = AsyncMock(
            side_effect=[
                tool_reply("searchPubMedWithQuery", {"query": "lung cancer", "maxResults": 3}),
                text_reply("I found 42 papers."),
            ]
        )
        factory, client = fake_client_factory(search_result)
        service = ChatService(store, llm=llm, client_factory=factory)

        reply = await service.handle("find lung cancer papers", "c1")

        assert reply == "I found 42 papers."
        client.search.assert_awaited_once_with("lung+AND+cancer", 3)

        history = store.get("c1")
        assert [m["role"] for m in history] == ["user", "assistant", "user", "assistant"]
        assert history[1]["content"][1] == {
            "type": "tool_use",
            "id": "toolu_1",
            "name": "searchPubMedWithQuery",
            "input": {"query": "lung cancer", "maxResults": 3},
        }
        tool_result = history[2]["content"][0]
        assert tool_result["type"] == "tool_result"
        assert tool_result["tool_use_id"] == "toolu_1"
        payload = json.loads(tool_result["content"])
        assert payload["meshTerms"] == "lung+AND+cancer"
        assert payload["totalResults"] == 42
        assert payload["papers"][0]["pmid"] == "1"

        # second LLM call sees the tool exchange
        second_history, _ = llm.call_args_list[1].args
        assert len(second_history) == 3

    async def test_history_carries_across_turns(self):
        store = InMemoryConversationStore()
        llm = AsyncMock(side_effect=[text_reply("one"), text_reply("two")])
        factory, _ = fake_client_factory(RuntimeError("unused"))
        service = ChatService(store, llm=llm, client_factory=factory)

        await service.handle("first", "c1")
        await service.handle("second", "c1")

        history, _ = llm.call_args_list[1].args
        assert [m["content"] for m in history] == ["first", "one", "second"]

    async def test_retrieval_failure_propagates_and_keeps_history_clean(self):
        store = InMemoryConversationStore()
        llm = AsyncMock(return_value=tool_reply("searchPubMedWithQuery", {"query": "x y z cancer"}))
        factory, _ = fake_client_factory(RetrievalFailed("pubmed", "esearch failed"))
        service = ChatService(store, llm=llm, client_factory=factory)

        with pytest.raises(RetrievalFailed):
            await service.handle("search cancer", "c1")

        assert store.get("c1") == [{"role": "user", "content": "search cancer"}]

    async def test_unknown_tool_raises(self):
        store = InMemoryConversationStore()
        llm = AsyncMock(return_value=tool_reply("dropTables", {}))
        factory, _ = fake_client_factory(RuntimeError("unused"))
        service = ChatService(store, llm=llm, client_factory=factory)

        with pytest.raises(UnknownCapability):
            await service.handle("hi", "c1")

    async def test_tool_rounds_are_bounded(self, search_result):
        store = InMemoryConversationStore()
        llm = AsyncMock(
            return_value=tool_reply("searchPubMedWithQuery", {"query": "lung cancer"})
        )
        factory, client = fake_client_factory(search_result)
        service = ChatService(store, llm=llm, client_factory=factory, max_tool_rounds=2)

        reply = await service.handle("loop forever", "c1")

        assert reply == "Let me search."
        assert client.search.await_count == 2
        assert llm.await_count == 3
