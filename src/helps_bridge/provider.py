from __future__ import annotations

import os
from enum import StrEnum
from typing import Final

from dotenv import load_dotenv

from helps_bridge._exceptions import config_error

load_dotenv()


class Provider(StrEnum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


_ENV_VARS: Final[dict[Provider, str]] = {
    Provider.OPENAI: "OPENAI_API_KEY",
    Provider.ANTHROPIC: "ANTHROPIC_API_KEY",
}


def get_api_key(provider: Provider) -> str:
    """Return the API key for *provider* or raise a CONFIG error."""
    try:
        env_var = _ENV_VARS[provider]
    except KeyError:
        raise config_error(f"No config for {provider!s}") from None

    key = os.environ.get(env_var)
    if not key:
        raise config_error(f"{env_var} missing")
    return key


__all__ = ["Provider", "get_api_key"]
