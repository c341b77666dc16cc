"""
Shared test fixtures for the Saber test suite.

Provides: deterministic fake model collaborators, tmp-path backed stores,
and helpers for building vectors with a known cosine score.
No model downloads or network calls happen in tests.
"""

import hashlib
import logging
import math

import pytest

from saber.src.core.ingestor import IndexingPipeline
from saber.src.core.rag_engine import RAGManager
from saber.src.core.retriever import TextRetriever
from saber.src.core.router import QueryRouter
from saber.src.database.image_index_store import ImageIndexStore
from saber.src.database.schemas import Chunk, TextIndex
from saber.src.database.text_index_store import TextIndexStore


def unit(cos: float) -> list[float]:
    """2-D unit vector whose cosine with ``[1, 0]`` equals *cos*."""
    return [cos, math.sqrt(max(0.0, 1.0 - cos * cos))]


def make_chunk(file_name: str, index: int, text: str, embedding: list[float]) -> Chunk:
    return Chunk(id=Chunk.make_id(file_name, index), source_file=file_name, text=text, embedding=embedding)


def _hash_vector(text: str, dim: int = 4) -> list[float]:
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    return [b / 255.0 + 0.01 for b in digest[:dim]]


class FakeTextEmbedder:
    """Returns configured vectors, or a stable hash-derived one."""

    def __init__(self, vectors=None, fail=False):
        self.vectors = dict(vectors or {})
        self.fail = fail
        self.query_calls = []
        self.document_calls = []

    def embed_query(self, text):
        self.query_calls.append(text)
        if self.fail:
            raise RuntimeError("embedding backend down")
        return self.vectors.get(text, _hash_vector(text))

    def embed_documents(self, texts):
        self.document_calls.append(list(texts))
        if self.fail:
            raise RuntimeError("embedding backend down")
        return [self.vectors.get(t, _hash_vector(t)) for t in texts]


class FakeImageEmbedder:
    def __init__(self, image_vector=None, query_vectors=None, fail=False):
        self.image_vector = image_vector or [1.0, 0.0]
        self.query_vectors = dict(query_vectors or {})
        self.fail = fail

    def embed_image(self, data):
        if self.fail:
            raise RuntimeError("clip failed")
        return list(self.image_vector)

    def embed_query(self, text):
        return self.query_vectors.get(text, [1.0, 0.0])


class FakeCaptioner:
    def __init__(self, caption="um gato no sofá", fail=False):
        self._caption = caption
        self.fail = fail

    def caption(self, data):
        if self.fail:
            raise RuntimeError("blip failed")
        return self._caption


class FakeGenerator:
    def __init__(self, answer="resposta gerada"):
        self.answer = answer
        self.calls = []

    async def generate(self, prompt, *, temperature, max_tokens):
        self.calls.append({"prompt": prompt, "temperature": temperature, "max_tokens": max_tokens})
        return self.answer


@pytest.fixture
def text_store(tmp_path):
    return TextIndexStore(index_path=tmp_path / "vector_index.json")


@pytest.fixture
def image_store(tmp_path):
    return ImageIndexStore(index_path=tmp_path / "image_index.json", image_dir=tmp_path / "images")


@pytest.fixture
def knowledge_dir(tmp_path):
    directory = tmp_path / "knowledge"
    directory.mkdir()
    return directory


@pytest.fixture
def text_embedder():
    return FakeTextEmbedder()


@pytest.fixture
def image_embedder():
    return FakeImageEmbedder()


@pytest.fixture
def captioner():
    return FakeCaptioner()


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def pipeline(text_store, image_store, text_embedder, image_embedder, captioner, knowledge_dir):
    return IndexingPipeline(text_store, image_store, text_embedder, image_embedder, captioner, source_dir=knowledge_dir)


@pytest.fixture
def grounded_store(text_store):
    """Index whose chunks score 0.9 / 0.8 / 0.5 / 0.1 against ``[1, 0]``."""
    docs = [
        make_chunk("faq.md", 0, "Protocolo X usa handshake em três etapas.", unit(0.5)),
        make_chunk("faq.md", 1, "O protocolo X foi criado em 2010.", unit(0.9)),
        make_chunk("faq.md", 2, "Receita de bolo de cenoura.", unit(0.1)),
        make_chunk("notes.txt", 0, "Protocolo X roda sobre TCP.", unit(0.8)),
    ]
    text_store.save(TextIndex(docs=docs))
    return text_store


@pytest.fixture
def rag(text_store, image_store, text_embedder, image_embedder, generator, pipeline):
    router = QueryRouter(text_store, text_embedder, retriever=TextRetriever(3), threshold=0.75)
    return RAGManager(router, generator, pipeline, image_store, image_embedder)


@pytest.fixture
def saber_logs(caplog):
    """``caplog`` attached to the ``saber`` package logger (which does not propagate)."""
    package_logger = logging.getLogger("saber")
    package_logger.addHandler(caplog.handler)
    caplog.set_level(logging.DEBUG, logger="saber")
    yield caplog
    package_logger.removeHandler(caplog.handler)
