"""DeepSeek client configuration (OpenAI-compatible chat completions)."""

import os
from functools import lru_cache

from dotenv import load_dotenv
from openai import OpenAI

load_dotenv()

DEEPSEEK_API_KEY = os.getenv("DEEPSEEK_API_KEY")
DEEPSEEK_BASE_URL = os.getenv("DEEPSEEK_BASE_URL", "https://api.deepseek.com")
DEEPSEEK_MODEL = os.getenv("DEEPSEEK_MODEL", "deepseek-chat")
DEEPSEEK_TIMEOUT_SECONDS = float(os.getenv("DEEPSEEK_TIMEOUT_SECONDS", "30"))


def is_deepseek_configured() -> bool:
    return bool(DEEPSEEK_API_KEY and DEEPSEEK_API_KEY.strip())


@lru_cache(maxsize=1)
def get_deepseek_client() -> OpenAI:
    """Return the shared client, failing loudly when the key is absent."""
    if not is_deepseek_configured():
        raise RuntimeError("DEEPSEEK_API_KEY missing from the environment")
    return OpenAI(
        api_key=DEEPSEEK_API_KEY,
        base_url=DEEPSEEK_BASE_URL,
        timeout=DEEPSEEK_TIMEOUT_SECONDS,
    )


__all__ = [
    "DEEPSEEK_MODEL",
    "get_deepseek_client",
    "is_deepseek_configured",
]
