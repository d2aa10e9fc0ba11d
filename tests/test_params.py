"""Tests for chat option normalization."""

import pytest

from helps_bridge.params import normalize_params


class TestParamsNormalization:
    """Test parameter normalization functionality."""

    def test_basic_params_normalization(self):
        """Standard keys stay at the top level."""
        params = normalize_params({"temperature": 0.7, "max_tokens": 100, "top_p": 0.9, "seed": 7})

        assert params["temperature"] == 0.7
        assert params["max_tokens"] == 100
        assert params["top_p"] == 0.9
        assert params["seed"] == 7
        assert params["extra"] == {}

    def test_unknown_keys_move_to_extra(self):
        """Provider-specific keys are carried in extra."""
        params = normalize_params({"temperature": 0.7, "reasoning_effort": "minimal", "n": 2})

        assert params["temperature"] == 0.7
        assert params["extra"] == {"reasoning_effort": "minimal", "n": 2}
        assert "n" not in params

    def test_camel_case_aliases(self):
        """camelCase spellings are renamed."""
        params = normalize_params({"maxTokens": 50, "topP": 0.5, "stopSequences": ["\n"]})

        assert params["max_tokens"] == 50
        assert params["top_p"] == 0.5
        assert params["stop"] == ["\n"]

    def test_none_values_dropped(self):
        """None values are removed entirely."""
        params = normalize_params({"temperature": 0.7, "max_tokens": None, "logprobs": None})

        assert params == {"temperature": 0.7, "extra": {}}

    def test_existing_extra_dict_merge(self):
        """An explicit extra dict is merged last."""
        params = normalize_params(
            {"reasoning_effort": "minimal", "extra": {"verbosity": "high", "reasoning_effort": "high"}}
        )

        assert params["extra"] == {"reasoning_effort": "high", "verbosity": "high"}

    def test_empty_normalization(self):
        """Test normalization with empty/None input."""
        assert normalize_params({}) == {"extra": {}}
        assert normalize_params(None) == {"extra": {}}

    def test_zero_values_kept(self):
        params = normalize_params({"temperature": 0.0, "max_tokens": 0, "stop": []})

        assert params["temperature"] == 0.0
        assert params["max_tokens"] == 0
        assert params["stop"] == []

    def test_invalid_input(self):
        with pytest.raises(TypeError):
            normalize_params(["temperature", 0.1])
        with pytest.raises(TypeError):
            normalize_params({"extra": "nope"})
