"""
Anthropic Claude client used for the coaching analysis.

Supports configuration via:
1. Environment variables (ANTHROPIC_API_KEY, ANALYSIS_MODEL,
   ANALYSIS_MAX_TOKENS, ANALYSIS_TIMEOUT_SECONDS)
2. Streamlit secrets with the same names
3. Defaults below (no default API key)

Usage:
    from llm import AnthropicClient

    client = AnthropicClient()
    response = await client.complete("...")  # {"content": [{"type": "text", ...}]}
"""

import os
import sys
from typing import Optional, Dict, Any

import anthropic

# Try to import Streamlit secrets
try:
    import streamlit as st
    HAS_STREAMLIT = True
except ImportError:
    HAS_STREAMLIT = False

DEFAULT_MODEL = "claude-sonnet-4-20250514"
DEFAULT_MAX_TOKENS = 1000
DEFAULT_TIMEOUT_SECONDS = 60.0


def _get_setting(name: str, default: Optional[str] = None) -> Optional[str]:
    """Read a setting from the environment, then Streamlit secrets."""
    value = os.environ.get(name)
    if value:
        return value

    if HAS_STREAMLIT:
        try:
            return st.secrets[name]
        except (KeyError, FileNotFoundError):
            pass

    return default


def get_llm_config() -> Dict[str, Any]:
    """
    Resolve the LLM configuration.

    Returns dict with api_key (may be None), model, max_tokens, timeout.
    """
    return {
        "api_key": _get_setting("ANTHROPIC_API_KEY"),
        "model": _get_setting("ANALYSIS_MODEL", DEFAULT_MODEL),
        "max_tokens": int(_get_setting("ANALYSIS_MAX_TOKENS", str(DEFAULT_MAX_TOKENS))),
        "timeout": float(_get_setting("ANALYSIS_TIMEOUT_SECONDS", str(DEFAULT_TIMEOUT_SECONDS))),
    }


class AnthropicClient:
    """
    Thin async wrapper over the Anthropic Messages API.

    The SDK client is created on the first call, so a missing API key
    shows up as a failed request instead of a startup crash.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or get_llm_config()
        self._client: Optional[anthropic.AsyncAnthropic] = None

    def _get_client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            client_kwargs: Dict[str, Any] = {"timeout": self.config["timeout"]}
            if self.config.get("api_key"):
                client_kwargs["api_key"] = self.config["api_key"]
            self._client = anthropic.AsyncAnthropic(**client_kwargs)
        return self._client

    async def complete(self, prompt: str) -> Dict[str, Any]:
        """
        Send a single user message and return the response as a dict.

        Raises:
            TimeoutError: The API did not answer within the configured timeout
            anthropic.APIError: Any other API or connection failure
        """
        client = self._get_client()
        try:
            message = await client.messages.create(
                model=self.config["model"],
                max_tokens=self.config["max_tokens"],
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APITimeoutError as e:
            raise TimeoutError(str(e)) from e
        except anthropic.AuthenticationError:
            print("[llm] API key is invalid or missing", file=sys.stderr)
            raise
        except anthropic.RateLimitError:
            print("[llm] Rate limit hit", file=sys.stderr)
            raise

        return message.model_dump()
