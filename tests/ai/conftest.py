"""Test fixtures for the OpenAI adapters."""
import json
import pytest
from unittest.mock import Mock

from aislewise.ai.models import GPTConfig
from aislewise.config.settings import OpenAISettings
from aislewise.domain.types import AisleNode, SectionNode


@pytest.fixture
def completion():
    """Factory for chat completions whose first message carries a payload."""
    def build(payload) -> Mock:
        content = payload if isinstance(payload, str) else json.dumps(payload)
        response = Mock()
        response.choices = [Mock(message=Mock(content=content))]
        return response
    return build


@pytest.fixture
def openai_settings():
    """OpenAI settings with no key from the environment."""
    return OpenAISettings(API_KEY="")


@pytest.fixture
def gpt_config():
    """GPT configuration for testing."""
    return GPTConfig(
        model="gpt-4o-mini",
        temperature=0.0,
        max_retries=2,
        timeout=5
    )


@pytest.fixture
def tree():
    """Layout with Produce (Fruit) and Dairy (no sections)."""
    return [
        AisleNode(
            id="a-produce",
            name="Produce",
            sort_order=0,
            sections=[SectionNode(id="s-fruit", name="Fruit", sort_order=0)]
        ),
        AisleNode(id="a-dairy", name="Dairy", sort_order=1, sections=[]),
    ]
