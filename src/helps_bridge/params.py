"""
Chat option normalization for helps-bridge.

Public API
- Callers pass a dict as ``params`` to ``llm.chat`` (or ``options`` to
  ``LLMHelper.chat``).

Contract
- Standard keys work across both providers:
  temperature: float
  max_tokens: int
  top_p: float
  stop: str | list[str]
  tool_choice: str | dict
  response_format: dict
  seed: int
  user: str

- Provider specific keys go under `extra` and pass through unchanged.
  Unknown top-level keys are moved into extra.

camelCase spellings of the standard keys (``maxTokens``, ``topP``,
``stopSequences``) are accepted and renamed.
"""

from __future__ import annotations

from typing import Any, Final

STANDARD_KEYS: Final = {
    "temperature",
    "max_tokens",
    "top_p",
    "stop",
    "tool_choice",
    "response_format",
    "seed",
    "user",
}

_ALIASES: Final = {
    "maxTokens": "max_tokens",
    "topP": "top_p",
    "stopSequences": "stop",
}


def normalize_params(params: dict | None) -> dict:
    """
    Normalize a user-supplied params dict to a single internal shape.

    Returns a dict with only standard keys plus an `extra` dict.
    Rules:
      - Keys not in STANDARD_KEYS are moved into extra
      - If the caller already passed an `extra` dict it is merged last
      - None values are dropped

    Example
    -------
    >>> normalize_params({"temperature": 0.2, "maxTokens": 400, "logit_bias": {}})
    {'temperature': 0.2, 'max_tokens': 400, 'extra': {'logit_bias': {}}}
    """
    if params is None:
        return {"extra": {}}
    if not isinstance(params, dict):
        raise TypeError(f"params must be a dict, got {type(params).__name__}")

    user_extra = params.get("extra") or {}
    if not isinstance(user_extra, dict):
        raise TypeError("params['extra'] must be a dict")

    std: dict[str, Any] = {}
    extra: dict[str, Any] = {}
    for key, value in params.items():
        if key == "extra" or value is None:
            continue
        key = _ALIASES.get(key, key)
        if key in STANDARD_KEYS:
            std[key] = value
        else:
            extra[key] = value

    std["extra"] = {**extra, **user_extra}
    return std
