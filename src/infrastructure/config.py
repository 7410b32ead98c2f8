"""
infrastructure.config - Typed, injectable configuration.

A frozen dataclass that can be constructed from the environment (and a
.env file) or passed explicitly in tests. No module-level globals.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class Settings:
    """Centralized configuration for the BotMojo assistant core.

    Construct via from_env() in entry points, or pass explicitly in tests.
    """
    project_root: Path

    # ── Entity store ────────────────────────────────────────────
    db_path: str = "botmojo.db"
    db_max_retries: int = 3
    db_retry_backoff: float = 0.5          # seconds between connection attempts
    db_statement_cache_size: int = 128
    db_busy_timeout: float = 5.0           # seconds to wait on a locked database
    # "append" keeps duplicate (source, target, type) edges, "dedupe" skips them
    relationship_policy: str = "append"

    # ── Tool registry ───────────────────────────────────────────
    tool_error_log_size: int = 20
    security_event_log_size: int = 100
    health_degraded_rate: float = 0.8      # per-tool success rate floor
    health_unhealthy_rate: float = 0.9     # aggregate success rate floor
    health_min_calls: int = 10

    # ── Outbound tool APIs ──────────────────────────────────────
    http_timeout: float = 10.0
    openweather_api_key: str = ""
    google_search_api_key: str = ""
    google_search_cx: str = ""

    # ── Centralized LLM Provider (triage) ───────────────────────
    # Allowed: "openai", "groq", "ollama"
    llm_provider: str = "ollama"
    llm_model_ollama: str = "llama3.2"
    llm_model_openai: str = "gpt-4.1-mini"
    llm_model_groq: str = "llama-3.3-70b-versatile"
    ollama_base_url: str = "http://localhost:11434/"
    groq_api_key: str = ""
    openai_api_key: str = ""

    # ── Requests / API ──────────────────────────────────────────
    default_user_id: str = "default_user"
    max_query_length: int = 2000
    admin_token: str = ""
    log_level: str = "INFO"

    @property
    def active_llm_model(self) -> str:
        """Return the model name for the currently active LLM provider."""
        if self.llm_provider == "openai":
            return self.llm_model_openai
        elif self.llm_provider == "groq":
            return self.llm_model_groq
        return self.llm_model_ollama

    @classmethod
    def from_env(cls, project_root: Optional[Path] = None) -> Settings:
        """Build Settings from the environment, loading .env first."""
        from dotenv import load_dotenv
        load_dotenv()

        root = project_root or Path(__file__).resolve().parent.parent.parent

        return cls(
            project_root=root,
            db_path=os.getenv("DB_PATH", str(root / "botmojo.db")),
            db_max_retries=int(os.getenv("DB_MAX_RETRIES", "3")),
            db_retry_backoff=float(os.getenv("DB_RETRY_BACKOFF", "0.5")),
            db_statement_cache_size=int(os.getenv("DB_STATEMENT_CACHE_SIZE", "128")),
            db_busy_timeout=float(os.getenv("DB_BUSY_TIMEOUT", "5.0")),
            relationship_policy=os.getenv("RELATIONSHIP_POLICY", "append"),

            tool_error_log_size=int(os.getenv("TOOL_ERROR_LOG_SIZE", "20")),
            security_event_log_size=int(os.getenv("SECURITY_EVENT_LOG_SIZE", "100")),
            health_degraded_rate=float(os.getenv("HEALTH_DEGRADED_RATE", "0.8")),
            health_unhealthy_rate=float(os.getenv("HEALTH_UNHEALTHY_RATE", "0.9")),
            health_min_calls=int(os.getenv("HEALTH_MIN_CALLS", "10")),

            http_timeout=float(os.getenv("HTTP_TIMEOUT", "10")),
            openweather_api_key=os.getenv("OPENWEATHER_API_KEY", ""),
            google_search_api_key=os.getenv("GOOGLE_SEARCH_API_KEY", ""),
            google_search_cx=os.getenv("GOOGLE_SEARCH_CX", ""),

            llm_provider=os.getenv("LLM_PROVIDER", "ollama"),
            llm_model_ollama=os.getenv("LLM_MODEL_OLLAMA", "llama3.2"),
            llm_model_openai=os.getenv("LLM_MODEL_OPENAI", "gpt-4.1-mini"),
            llm_model_groq=os.getenv("LLM_MODEL_GROQ", "llama-3.3-70b-versatile"),
            ollama_base_url=os.getenv("OLLAMA_BASE_URL", "http://localhost:11434/"),
            groq_api_key=os.getenv("GROQ_API_KEY", ""),
            openai_api_key=os.getenv("OPENAI_API_KEY", ""),

            default_user_id=os.getenv("DEFAULT_USER_ID", "default_user"),
            max_query_length=int(os.getenv("MAX_QUERY_LENGTH", "2000")),
            admin_token=os.getenv("ADMIN_TOKEN", ""),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
