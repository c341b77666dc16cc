"""
Saber - Model Collaborators
============================
Structural interfaces for the external model pipelines the core depends
on, plus the concrete adapters wired in by the entry point.

Protocols
---------
``TextEmbedder``   – LangChain ``Embeddings``-compatible text encoder.
``ImageEmbedder``  – image encoder that can also embed search phrases
                     into the same space.
``Captioner``      – image → short description.
``Generator``      – async prompt → answer; never raises.

Adapters
--------
``create_text_embedder``  Hugging Face sentence-transformers (local) or
                          Google Gemini embeddings.
``BlipCaptioner``         ``transformers`` image-to-text pipeline.
``ClipImageEmbedder``     ``transformers`` CLIP, L2-normalised features.
``ChatModelGenerator``    LangChain chat model (Ollama or Gemini).

Model handles are created lazily on first use and owned by the adapter
instance; ``build_collaborators`` is the single place they are built.
Heavy libraries (torch, transformers, provider SDKs) are imported
inside the adapters so the core imports without them.

Usage:
    from saber.src.core.collaborators import build_collaborators
    collaborators = build_collaborators(settings)
"""

from __future__ import annotations

import asyncio
import io
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from saber.config.prompt_templates import LLM_EMPTY_RESPONSE, LLM_UNAVAILABLE
from saber.config.settings import Settings
from saber.src.utils.logger import get_logger

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  PROTOCOLS
# ══════════════════════════════════════════════════════════════════════


@runtime_checkable
class TextEmbedder(Protocol):
    """Structural type for any LangChain-compatible embedding model."""

    def embed_documents(self, texts: list[str]) -> list[list[float]]: ...

    def embed_query(self, text: str) -> list[float]: ...


@runtime_checkable
class ImageEmbedder(Protocol):
    """Embeds images, and search phrases into the same vector space."""

    def embed_image(self, data: bytes) -> list[float]: ...

    def embed_query(self, text: str) -> list[float]: ...


@runtime_checkable
class Captioner(Protocol):
    """Produces a short natural-language description of an image."""

    def caption(self, data: bytes) -> str: ...


@runtime_checkable
class Generator(Protocol):
    """Text generation.  Implementations return a placeholder instead of raising."""

    async def generate(self, prompt: str, *, temperature: float, max_tokens: int) -> str: ...


@dataclass
class Collaborators:
    """The model pipelines one process runs with."""

    text_embedder: TextEmbedder
    image_embedder: ImageEmbedder
    captioner: Captioner
    generator: Generator


# ══════════════════════════════════════════════════════════════════════
#  TEXT EMBEDDINGS
# ══════════════════════════════════════════════════════════════════════


def create_text_embedder(cfg: Settings) -> TextEmbedder:
    """Build the LangChain embedding model selected by ``EMBEDDING_PROVIDER``."""
    if cfg.EMBEDDING_PROVIDER == "google":
        from langchain_google_genai import GoogleGenerativeAIEmbeddings

        logger.info("Text embeddings: Google (%s).", cfg.GOOGLE_EMBEDDING_MODEL)
        return GoogleGenerativeAIEmbeddings(model=cfg.GOOGLE_EMBEDDING_MODEL, google_api_key=cfg.GOOGLE_API_KEY.get_secret_value())

    from langchain_huggingface import HuggingFaceEmbeddings

    logger.info("Text embeddings: Hugging Face (%s on %s).", cfg.EMBEDDING_MODEL, cfg.MODEL_DEVICE)
    return HuggingFaceEmbeddings(model_name=cfg.EMBEDDING_MODEL, model_kwargs={"device": cfg.MODEL_DEVICE}, encode_kwargs={"normalize_embeddings": True})


# ══════════════════════════════════════════════════════════════════════
#  IMAGE CAPTIONING
# ══════════════════════════════════════════════════════════════════════


def _open_image(data: bytes) -> Any:
    from PIL import Image

    image = Image.open(io.BytesIO(data))
    return image.convert("RGB") if image.mode != "RGB" else image


class BlipCaptioner:
    """
    Image captioning through the ``transformers`` image-to-text pipeline.

    Errors propagate; the indexing pipeline owns the fallback caption.
    """

    __slots__ = ("_model_name", "_device", "_pipe")

    def __init__(self, model_name: str, device: str = "cpu") -> None:
        self._model_name = model_name
        self._device = device
        self._pipe: Any = None


    def _get_pipeline(self) -> Any:
        if self._pipe is None:
            from transformers import pipeline

            logger.info("Loading captioning model %s …", self._model_name)
            self._pipe = pipeline("image-to-text", model=self._model_name, device=self._device)
        return self._pipe


    def caption(self, data: bytes) -> str:
        outputs = self._get_pipeline()(_open_image(data))
        if not outputs:
            return ""
        return str(outputs[0].get("generated_text", "")).strip()


# ══════════════════════════════════════════════════════════════════════
#  IMAGE EMBEDDINGS
# ══════════════════════════════════════════════════════════════════════


class ClipImageEmbedder:
    """
    CLIP image/text encoder.

    Images and search phrases are projected into CLIP's shared space and
    L2-normalised, so "foto de um gato" can be compared with stored photos.
    """

    __slots__ = ("_model_name", "_device", "_model", "_processor")

    def __init__(self, model_name: str, device: str = "cpu") -> None:
        self._model_name = model_name
        self._device = device
        self._model: Any = None
        self._processor: Any = None


    def _load(self) -> tuple[Any, Any]:
        if self._model is None:
            from transformers import CLIPModel, CLIPProcessor

            logger.info("Loading CLIP model %s on %s …", self._model_name, self._device)
            self._processor = CLIPProcessor.from_pretrained(self._model_name)
            self._model = CLIPModel.from_pretrained(self._model_name).to(self._device)
            self._model.eval()
        return self._model, self._processor


    @staticmethod
    def _to_vector(features: Any) -> list[float]:
        import torch

        if not isinstance(features, torch.Tensor):
            features = features.pooler_output
        features = torch.nn.functional.normalize(features, p=2, dim=-1)
        return features[0].detach().cpu().tolist()


    def embed_image(self, data: bytes) -> list[float]:
        import torch

        model, processor = self._load()
        inputs = processor(images=_open_image(data), return_tensors="pt").to(self._device)
        with torch.no_grad():
            features = model.get_image_features(**inputs)
        return self._to_vector(features)


    def embed_query(self, text: str) -> list[float]:
        import torch

        model, processor = self._load()
        inputs = processor(text=[text], return_tensors="pt", padding=True, truncation=True).to(self._device)
        with torch.no_grad():
            features = model.get_text_features(**inputs)
        return self._to_vector(features)


# ══════════════════════════════════════════════════════════════════════
#  GENERATION
# ══════════════════════════════════════════════════════════════════════

ChatModelFactory = Callable[[float, int], Any]


class ChatModelGenerator:
    """
    ``Generator`` backed by a LangChain chat model.

    Parameters
    ----------
    factory
        Builds a chat model for a ``(temperature, max_tokens)`` pair.
        Models are cached per pair.
    timeout
        Seconds to wait for an answer before giving up.
    """

    __slots__ = ("_factory", "_timeout", "_models")

    def __init__(self, factory: ChatModelFactory, timeout: float) -> None:
        self._factory = factory
        self._timeout = timeout
        self._models: dict[tuple[float, int], Any] = {}


    def _model_for(self, temperature: float, max_tokens: int) -> Any:
        key = (temperature, max_tokens)
        if key not in self._models:
            self._models[key] = self._factory(temperature, max_tokens)
        return self._models[key]


    async def generate(self, prompt: str, *, temperature: float, max_tokens: int) -> str:
        """Return the model's answer, or a user-visible placeholder on failure."""
        from langchain_core.messages import HumanMessage

        logger.info("[LLM] Sending prompt (temperature=%.1f, max_tokens=%d): %s", temperature, max_tokens, prompt[:200].replace("\n", " "))
        try:
            llm = self._model_for(temperature, max_tokens)
            response = await asyncio.wait_for(llm.ainvoke([HumanMessage(content=prompt)]), timeout=self._timeout)
        except Exception:
            logger.exception("[LLM] Generation failed.")
            return LLM_UNAVAILABLE

        answer = response.content if hasattr(response, "content") else str(response)
        if not isinstance(answer, str):
            answer = "".join(part if isinstance(part, str) else str(part.get("text", "")) for part in answer)
        return answer.strip() or LLM_EMPTY_RESPONSE


def _chat_model_factory(cfg: Settings) -> ChatModelFactory:
    """Return a factory for the chat model selected by ``LLM_PROVIDER``."""
    if cfg.LLM_PROVIDER == "google":
        from langchain_google_genai import ChatGoogleGenerativeAI

        api_key = cfg.GOOGLE_API_KEY.get_secret_value()
        logger.info("Generation: Google (%s).", cfg.GOOGLE_LLM_MODEL)
        return lambda temperature, max_tokens: ChatGoogleGenerativeAI(model=cfg.GOOGLE_LLM_MODEL, temperature=temperature, max_output_tokens=max_tokens, google_api_key=api_key)

    from langchain_ollama import ChatOllama

    logger.info("Generation: Ollama (%s at %s).", cfg.LLM_MODEL, cfg.OLLAMA_BASE_URL)
    return lambda temperature, max_tokens: ChatOllama(model=cfg.LLM_MODEL, base_url=cfg.OLLAMA_BASE_URL, temperature=temperature, num_predict=max_tokens)


# ══════════════════════════════════════════════════════════════════════
#  WIRING
# ══════════════════════════════════════════════════════════════════════


def build_collaborators(cfg: Settings) -> Collaborators:
    """Construct every model adapter for one process (models load lazily)."""
    return Collaborators(
        text_embedder=create_text_embedder(cfg),
        image_embedder=ClipImageEmbedder(cfg.IMAGE_EMBEDDING_MODEL, cfg.MODEL_DEVICE),
        captioner=BlipCaptioner(cfg.CAPTION_MODEL, cfg.MODEL_DEVICE),
        generator=ChatModelGenerator(_chat_model_factory(cfg), timeout=cfg.LLM_TIMEOUT_SECONDS),
    )
