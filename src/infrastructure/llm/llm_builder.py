"""
infrastructure.llm.llm_builder - Chat model construction for the triage step.

The provider is controlled by the LLM_PROVIDER setting.

Supported providers:
    - "openai"  → langchain_openai.ChatOpenAI
    - "groq"    → langchain_groq.ChatGroq
    - "ollama"  → langchain_ollama.ChatOllama
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from langchain_core.language_models import BaseChatModel

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = ("openai", "groq", "ollama")


def _openai(model: str, common: dict[str, Any], json_mode: bool, *, openai_api_key: str, **_) -> BaseChatModel:
    from langchain_openai import ChatOpenAI

    if not openai_api_key:
        raise ValueError("OPENAI_API_KEY is required when LLM_PROVIDER='openai'")
    kwargs = dict(common, model=model, openai_api_key=openai_api_key)
    if json_mode:
        kwargs["model_kwargs"] = {"response_format": {"type": "json_object"}}
    return ChatOpenAI(**kwargs)


def _groq(model: str, common: dict[str, Any], json_mode: bool, *, groq_api_key: str, **_) -> BaseChatModel:
    from langchain_groq import ChatGroq

    if not groq_api_key:
        raise ValueError("GROQ_API_KEY is required when LLM_PROVIDER='groq'")
    kwargs = dict(common, model=model, groq_api_key=groq_api_key)
    kwargs.setdefault("max_tokens", 1024)
    if json_mode:
        kwargs["model_kwargs"] = {"response_format": {"type": "json_object"}}
    return ChatGroq(**kwargs)


def _ollama(model: str, common: dict[str, Any], json_mode: bool, *, ollama_base_url: str, **_) -> BaseChatModel:
    from langchain_ollama import ChatOllama

    kwargs = dict(common, model=model, base_url=ollama_base_url)
    kwargs.pop("max_tokens", None)
    if json_mode:
        kwargs["format"] = "json"
    return ChatOllama(**kwargs)


_BUILDERS: dict[str, Callable[..., BaseChatModel]] = {
    "openai": _openai,
    "groq": _groq,
    "ollama": _ollama,
}


def build_llm(
    *,
    provider: str,
    model: str,
    temperature: float = 0,
    ollama_base_url: str = "http://localhost:11434/",
    openai_api_key: str = "",
    groq_api_key: str = "",
    json_mode: bool = False,
    max_tokens: Optional[int] = None,
) -> BaseChatModel:
    """Build a chat model for the given provider.

    Args:
        provider: One of "openai", "groq", "ollama".
        model: Model name for the selected provider.
        temperature: Sampling temperature.
        json_mode: Ask the provider for a JSON object answer.
        max_tokens: Maximum tokens (ignored by Ollama).

    Raises:
        ValueError: If the provider is unknown or required credentials are missing.
    """
    provider = provider.lower().strip()
    builder = _BUILDERS.get(provider)
    if builder is None:
        raise ValueError(
            f"Unsupported LLM_PROVIDER: '{provider}'. "
            f"Must be one of: {', '.join(SUPPORTED_PROVIDERS)}."
        )

    common: dict[str, Any] = {"temperature": temperature}
    if max_tokens is not None:
        common["max_tokens"] = max_tokens

    logger.info("Building %s chat model (model=%s, json_mode=%s)", provider, model, json_mode)
    return builder(
        model, common, json_mode,
        ollama_base_url=ollama_base_url,
        openai_api_key=openai_api_key,
        groq_api_key=groq_api_key,
    )
