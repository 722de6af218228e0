"""Tests for configuration settings."""
import pytest
from pydantic import ValidationError

from aislewise.config.settings import AislewiseSettings, OpenAISettings, PROJECT_ROOT


def test_values_are_normalized(tmp_path):
    settings = AislewiseSettings(
        DB_BACKEND="MEMORY",
        LOG_LEVEL="debug",
        DB_PATH="data/aislewise.db",
        LOG_FILE=None
    )

    assert settings.DB_BACKEND == "memory"
    assert settings.LOG_LEVEL == "DEBUG"
    assert settings.DB_PATH == PROJECT_ROOT / "data" / "aislewise.db"


@pytest.mark.parametrize("field,value", [
    ("DB_BACKEND", "postgres"),
    ("LOG_LEVEL", "LOUD"),
    ("LOG_FORMAT", "fancy"),
    ("SEARCH_LIMIT", 0),
])
def test_invalid_values_rejected(field, value):
    with pytest.raises(ValidationError):
        AislewiseSettings(LOG_FILE=None, **{field: value})


def test_environment_prefix(monkeypatch):
    monkeypatch.setenv("AISLEWISE_DEFAULT_STORE_NAME", "Corner shop")
    monkeypatch.setenv("OPENAI_MAX_RETRIES", "0")

    assert AislewiseSettings(LOG_FILE=None).DEFAULT_STORE_NAME == "Corner shop"
    with pytest.raises(ValidationError):
        OpenAISettings()
