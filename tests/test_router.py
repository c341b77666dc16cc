"""
Tests for query routing and prompt construction
"""

import pytest
from conftest import FakeTextEmbedder, make_chunk, unit

from saber.src.core.retriever import TextRetriever
from saber.src.core.router import QueryRouter
from saber.src.database.schemas import RoutingDecision, TextIndex

QUESTION = "Explique o protocolo X"


def make_router(store, embedder=None):
    embedder = embedder or FakeTextEmbedder({QUESTION: [1.0, 0.0]})
    return QueryRouter(store, embedder, retriever=TextRetriever(3), threshold=0.75)


class TestGreeting:
    @pytest.mark.parametrize("query", ["oi", "Oi, tudo bem?", "  BOM DIA pessoal", "olá!", "e aí, beleza?"])
    def test_greeting_prefixes(self, text_store, query):
        assert make_router(text_store).is_greeting(query)

    @pytest.mark.parametrize("query", [QUESTION, "Qual o horário?", ""])
    def test_not_greeting(self, text_store, query):
        assert not make_router(text_store).is_greeting(query)

    @pytest.mark.asyncio
    async def test_greeting_skips_retrieval(self, grounded_store):
        embedder = FakeTextEmbedder()
        routed = await make_router(grounded_store, embedder).route("oi")

        assert routed.decision is RoutingDecision.GREETING
        assert routed.temperature == 0.7
        assert routed.max_tokens == 50
        assert "Mensagem: oi" in routed.prompt
        assert embedder.query_calls == []

    @pytest.mark.asyncio
    async def test_greeting_with_punctuation(self, text_store):
        routed = await make_router(text_store).route("Oi, tudo bem?")
        assert routed.decision is RoutingDecision.GREETING

    def test_custom_greetings(self, text_store):
        router = QueryRouter(text_store, FakeTextEmbedder(), greetings=["Hello"])
        assert router.is_greeting("hello there")
        assert not router.is_greeting("oi")


class TestUngrounded:
    @pytest.mark.asyncio
    async def test_low_score_routes_to_direct_prompt(self, text_store):
        text_store.save(TextIndex(docs=[make_chunk("faq.md", 0, "Assunto não relacionado.", unit(0.40)), make_chunk("faq.md", 1, "Outro assunto.", unit(0.2))]))

        routed = await make_router(text_store).route(QUESTION)

        assert routed.decision is RoutingDecision.UNGROUNDED
        assert routed.top_score == pytest.approx(0.40)
        assert routed.temperature == 0.0
        assert routed.max_tokens == 220
        assert "Contexto" not in routed.prompt
        assert "Assunto não relacionado." not in routed.prompt
        assert QUESTION in routed.prompt
        assert routed.results == []

    @pytest.mark.asyncio
    async def test_index_from_another_model_is_reported(self, text_store, saber_logs):
        text_store.save(TextIndex(docs=[make_chunk("faq.md", 0, "Vetor de outro modelo.", [1.0, 0.0, 0.0])]))

        routed = await make_router(text_store).route(QUESTION)

        assert routed.decision is RoutingDecision.UNGROUNDED
        assert routed.top_score == 0.0
        assert any(r.levelname == "WARNING" and "rebuild the index" in r.getMessage() for r in saber_logs.records)

    @pytest.mark.asyncio
    async def test_matching_dimensions_do_not_warn(self, grounded_store, saber_logs):
        await make_router(grounded_store).route(QUESTION)

        assert not [r for r in saber_logs.records if r.levelname == "WARNING"]

    @pytest.mark.asyncio
    async def test_empty_index_routes_to_direct_prompt(self, text_store):
        routed = await make_router(text_store).route(QUESTION)

        assert routed.decision is RoutingDecision.UNGROUNDED
        assert routed.top_score is None


class TestGrounded:
    @pytest.mark.asyncio
    async def test_high_score_routes_to_context_prompt(self, grounded_store):
        routed = await make_router(grounded_store).route(QUESTION)

        assert routed.decision is RoutingDecision.GROUNDED
        assert routed.top_score == pytest.approx(0.90)
        assert routed.temperature == 0.0
        assert routed.max_tokens == 220
        assert [r.chunk.id for r in routed.results] == ["faq.md#1", "notes.txt#0", "faq.md#0"]

    @pytest.mark.asyncio
    async def test_context_holds_top3_bullets_in_score_order(self, grounded_store):
        routed = await make_router(grounded_store).route(QUESTION)

        expected = "- O protocolo X foi criado em 2010.\n- Protocolo X roda sobre TCP.\n- Protocolo X usa handshake em três etapas."
        assert expected in routed.prompt
        assert "Receita de bolo" not in routed.prompt
        assert routed.prompt.rstrip().endswith("Resposta:")

    @pytest.mark.asyncio
    async def test_threshold_is_inclusive(self, text_store):
        text_store.save(TextIndex(docs=[make_chunk("faq.md", 0, "Exato no limite.", [0.75, 0.0])]))
        embedder = FakeTextEmbedder({QUESTION: [1.0, 0.0]})
        router = QueryRouter(text_store, embedder, retriever=TextRetriever(3), threshold=1.0)

        routed = await router.route(QUESTION)

        assert routed.decision is RoutingDecision.GROUNDED

    def test_format_context(self, grounded_store):
        results = TextRetriever(2).retrieve([1.0, 0.0], grounded_store.docs)
        assert QueryRouter.format_context(results) == "- O protocolo X foi criado em 2010.\n- Protocolo X roda sobre TCP."
