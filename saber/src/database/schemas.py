"""Data models for the text and image indexes.

This module defines Pydantic models for stored records (chunks and image
records), the persisted index documents, and the transient values that
flow between the retrievers, the router and the engine facade.

JSON field names are kept short (``file`` rather than ``source_file``)
through aliases, so ``model_dump(by_alias=True)`` produces the on-disk
shape directly.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class Chunk(BaseModel):
    """One retrievable unit of document text.

    Attributes:
        id: ``"<file>#<index>"``, unique across the index.
        source_file: Knowledge file the chunk was cut from.
        text: Chunk text content (never empty).
        embedding: Embedding vector for the chunk.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    source_file: str = Field(alias="file")
    text: str = Field(min_length=1)
    embedding: list[float]

    @classmethod
    def make_id(cls, file_name: str, index: int) -> str:
        return f"{file_name}#{index}"


class TextIndex(BaseModel):
    """Ordered collection of chunks, persisted as ``{"docs": [...]}``."""

    docs: list[Chunk] = Field(default_factory=list)

    def __len__(self) -> int:
        return len(self.docs)

    @property
    def is_empty(self) -> bool:
        return not self.docs

    @property
    def dimensions(self) -> set[int]:
        """Distinct embedding lengths in the index (one element when consistent)."""
        return {len(chunk.embedding) for chunk in self.docs}


class ImageRecord(BaseModel):
    """A stored image with its caption and embedding.

    Attributes:
        file_path: Path of the stored image asset.
        caption: Generated caption, or a fallback placeholder.
        embedding: Image embedding, or ``None`` if it could not be computed.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    file_path: str = Field(alias="file")
    caption: str = ""
    embedding: list[float] | None = None


class RetrievalResult(BaseModel):
    """A chunk scored against a query embedding."""

    chunk: Chunk
    score: float


class ImageMatch(BaseModel):
    """Best-matching image record and its similarity score."""

    record: ImageRecord
    score: float


class RoutingDecision(str, Enum):
    """How a text query is answered."""

    GREETING = "greeting"
    GROUNDED = "grounded"
    UNGROUNDED = "ungrounded"


class RoutedPrompt(BaseModel):
    """Router output: the prompt to generate from and its options.

    Attributes:
        decision: Which branch of the router produced the prompt.
        prompt: Complete prompt string for the generator.
        temperature: Sampling temperature for generation.
        max_tokens: Token budget for generation.
        results: Retrieved chunks used as context (empty unless grounded).
        top_score: Best retrieval score seen, if retrieval ran.
    """

    decision: RoutingDecision
    prompt: str
    temperature: float
    max_tokens: int
    results: list[RetrievalResult] = Field(default_factory=list)
    top_score: float | None = None


class ImageReceipt(BaseModel):
    """What the engine reports back after storing a received image."""

    caption: str
    stored_path: Path


class InboundMessage(BaseModel):
    """A message delivered by the messaging channel.

    ``text`` is the message body, or the caption typed alongside an image.
    ``image`` holds the raw bytes when the message carries a picture.
    """

    sender: str = ""
    text: str = ""
    image: bytes | None = None


class OutboundReply(BaseModel):
    """A reply for the messaging channel: text, optionally with an image file."""

    text: str
    image_path: Path | None = None
