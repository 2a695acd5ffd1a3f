"""
Tests for core/errors.py and config.py
"""

import pytest

import config
from core.errors import (
    ComputationError,
    InputValidationError,
    OffloadTimeoutError,
    StatEngineError,
    error_from_payload,
)


class TestErrors:
    @pytest.mark.parametrize("cls, kind", [
        (InputValidationError, "validation"),
        (ComputationError, "computation"),
        (OffloadTimeoutError, "timeout"),
    ])
    def test_payload_rebuilds_same_class(self, cls, kind):
        payload = cls("something went wrong").to_payload()
        assert payload == {"kind": kind, "message": "something went wrong"}
        rebuilt = error_from_payload(payload)
        assert type(rebuilt) is cls
        assert rebuilt.message == "something went wrong"

    def test_unknown_kind_falls_back_to_base(self):
        rebuilt = error_from_payload({"kind": "mystery", "message": "m"})
        assert type(rebuilt) is StatEngineError


class TestConfig:
    def test_defaults(self, monkeypatch):
        for name in ("STAT_ADVISOR_OFFLOAD_TIMEOUT", "STAT_ADVISOR_OFFLOAD_ENABLED",
                     "STAT_ADVISOR_CACHE_TTL", "STAT_ADVISOR_LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)
        assert config.get_offload_timeout() == 30.0
        assert config.get_offload_enabled() is True
        assert config.get_cache_ttl() == 300.0
        assert config.get_log_level() == "WARNING"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("STAT_ADVISOR_OFFLOAD_TIMEOUT", "5")
        monkeypatch.setenv("STAT_ADVISOR_OFFLOAD_ENABLED", "false")
        monkeypatch.setenv("STAT_ADVISOR_LOG_LEVEL", "debug")
        assert config.get_offload_timeout() == 5.0
        assert config.get_offload_enabled() is False
        assert config.get_log_level() == "DEBUG"

    def test_invalid_values_fall_back(self, monkeypatch):
        monkeypatch.setenv("STAT_ADVISOR_OFFLOAD_TIMEOUT", "soon")
        monkeypatch.setenv("STAT_ADVISOR_CACHE_TTL", "-1")
        assert config.get_offload_timeout() == 30.0
        assert config.get_cache_ttl() == 300.0
