"""
Saber - Centralized Configuration
==================================
Uses ``pydantic-settings`` (``BaseSettings``) to load *all* configuration
from environment variables and the project-level ``.env`` file.

Retrieval Tunables
------------------
``TOP_K`` is the number of chunks returned per text retrieval and
``SIM_THRESHOLD`` is the minimum cosine score the best chunk must reach
for a query to be answered from retrieved context.

Providers
---------
Text embeddings run locally through Hugging Face by default
(``EMBEDDING_PROVIDER="huggingface"``) and generation goes to a local
Ollama server (``LLM_PROVIDER="ollama"``).  Either can be switched to
Google Gemini, in which case ``GOOGLE_API_KEY`` becomes **required**.

Paths
-----
All filesystem paths are ``Path.resolve()``-d at class level so they
work identically on Windows, WSL, and Linux.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Greeting phrases matched as case-insensitive prefixes of the query.
DEFAULT_GREETINGS: list[str] = ["oi", "olá", "ola", "bom dia", "boa tarde", "boa noite", "tudo bem", "eai", "e aí"]


class Settings(BaseSettings):
    """
    Application-wide settings.

    Every field is loaded from environment variables (or ``.env``).
    All fields have defaults, so a bare checkout starts with a local
    Hugging Face + Ollama setup.

    Attributes
    ----------
    KNOWLEDGE_DIR : Path
        Directory scanned for ``.txt`` / ``.md`` knowledge files.
    IMAGE_DIR : Path
        Directory where received images are stored.
    VECTOR_INDEX_PATH : Path
        JSON file holding the text-chunk index.
    IMAGE_INDEX_PATH : Path
        JSON file holding the image-record index.
    ENV : Literal["dev", "prod"]
        Environment mode controlling logging verbosity.
    TOP_K : int
        Number of chunks returned per text retrieval.
    SIM_THRESHOLD : float
        Minimum top score for a grounded answer.
    GREETINGS : list[str]
        Prefixes that route a message to the casual greeting prompt.
    EMBEDDING_PROVIDER : Literal["huggingface", "google"]
        Backend used for text embeddings.
    LLM_PROVIDER : Literal["ollama", "google"]
        Backend used for answer generation.
    GOOGLE_API_KEY : SecretStr | None
        Only required when a Google provider is selected.
    """

    # ── Resolved Absolute Paths ────────────────────────────────────────
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    KNOWLEDGE_DIR: Path = BASE_DIR / "knowledge"
    IMAGE_DIR: Path = BASE_DIR / "images"
    VECTOR_INDEX_PATH: Path = BASE_DIR / "vector_index.json"
    IMAGE_INDEX_PATH: Path = BASE_DIR / "image_index.json"

    # ── Environment Mode ───────────────────────────────────────────────
    ENV: Literal["dev", "prod"] = "dev"

    # ── Retrieval ──────────────────────────────────────────────────────
    TOP_K: int = 3
    SIM_THRESHOLD: float = 0.75
    GREETINGS: list[str] = DEFAULT_GREETINGS

    # ── Embedding & Vision Models ──────────────────────────────────────
    EMBEDDING_PROVIDER: Literal["huggingface", "google"] = "huggingface"
    EMBEDDING_MODEL: str = "sentence-transformers/all-MiniLM-L6-v2"
    GOOGLE_EMBEDDING_MODEL: str = "models/text-embedding-004"
    CAPTION_MODEL: str = "Salesforce/blip-image-captioning-base"
    IMAGE_EMBEDDING_MODEL: str = "openai/clip-vit-base-patch32"
    MODEL_DEVICE: str = "cpu"

    # ── Generation ─────────────────────────────────────────────────────
    LLM_PROVIDER: Literal["ollama", "google"] = "ollama"
    LLM_MODEL: str = "llama2"
    GOOGLE_LLM_MODEL: str = "gemini-2.0-flash"
    OLLAMA_BASE_URL: str = "http://localhost:11434"
    LLM_TIMEOUT_SECONDS: float = 120.0

    # ── API Keys (only for Google providers) ───────────────────────────
    GOOGLE_API_KEY: SecretStr | None = None

    # ── Validators ─────────────────────────────────────────────────────

    @field_validator("TOP_K")
    @classmethod
    def _top_k_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"TOP_K must be ≥ 1, got {v}")
        return v


    @field_validator("SIM_THRESHOLD")
    @classmethod
    def _threshold_range(cls, v: float) -> float:
        if not -1.0 <= v <= 1.0:
            raise ValueError(f"SIM_THRESHOLD must be within [-1, 1], got {v}")
        return v


    @field_validator("GREETINGS")
    @classmethod
    def _normalise_greetings(cls, v: list[str]) -> list[str]:
        phrases = [g.strip().lower() for g in v if g.strip()]
        if not phrases:
            raise ValueError("GREETINGS must contain at least one phrase")
        return phrases


    @field_validator("LLM_TIMEOUT_SECONDS")
    @classmethod
    def _timeout_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"LLM_TIMEOUT_SECONDS must be > 0, got {v}")
        return v


    @model_validator(mode="after")
    def _google_key_present(self) -> "Settings":
        uses_google = self.EMBEDDING_PROVIDER == "google" or self.LLM_PROVIDER == "google"
        if uses_google and self.GOOGLE_API_KEY is None:
            raise ValueError("GOOGLE_API_KEY is required when a Google provider is selected")
        return self

    # ── Pydantic Settings Configuration ────────────────────────────────
    model_config = SettingsConfigDict(env_file=Path(__file__).resolve().parent.parent.parent / ".env", env_file_encoding="utf-8", extra="ignore")


# ── Singleton Instance ─────────────────────────────────────────────────
# Import this throughout the project:
#     from saber.config.settings import settings
settings = Settings()
