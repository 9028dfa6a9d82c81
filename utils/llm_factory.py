"""
LLM Factory - Create chat model instances for the suggestion agents
Supports OpenAI, Groq, and xAI (Grok) OpenAI-compatible endpoints
"""

import os

from langchain_openai import ChatOpenAI

from models.errors import CollaboratorUnavailable
from utils.logging import logger


GROQ_BASE_URL = "https://api.groq.com/openai/v1"
XAI_BASE_URL = "https://api.x.ai/v1"

GPT4O_MINI = "gpt-4o-mini"


def _provider_for_key(key: str):
    """Auto-detect provider from the key prefix"""
    if key.startswith("gsk_"):
        return "groq", GROQ_BASE_URL
    if key.startswith("xai-"):
        return "xai", XAI_BASE_URL
    return "openai", None


def get_llm(model: str = GPT4O_MINI, temperature: float = 0, timeout: float = 20) -> ChatOpenAI:
    """
    Get configured chat model

    Priority: Groq > xAI > OpenAI

    Args:
        model: Model name
        temperature: Temperature setting
        timeout: Request timeout in seconds

    Returns:
        Configured ChatOpenAI instance

    Raises:
        CollaboratorUnavailable: no API key configured
    """

    groq_key = os.getenv("GROQ_API_KEY")
    xai_key = os.getenv("XAI_API_KEY")
    openai_key = os.getenv("OPENAI_API_KEY")

    if groq_key:
        provider, base_url, api_key = "groq", GROQ_BASE_URL, groq_key
    elif xai_key:
        provider, base_url, api_key = "xai", XAI_BASE_URL, xai_key
    elif openai_key:
        provider, base_url = _provider_for_key(openai_key)
        api_key = openai_key
    else:
        raise CollaboratorUnavailable(
            "llm", "No API key found. Set GROQ_API_KEY, XAI_API_KEY, or OPENAI_API_KEY in .env"
        )

    logger.log_step("llm_configured", {"provider": provider, "model": model})

    kwargs = {"model": model, "temperature": temperature, "api_key": api_key, "timeout": timeout}
    if base_url:
        kwargs["base_url"] = base_url
    return ChatOpenAI(**kwargs)
