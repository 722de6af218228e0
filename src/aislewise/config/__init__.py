"""Configuration package for Aislewise."""
from .settings import (
    AislewiseSettings,
    OpenAISettings,
    get_settings,
    get_openai_settings,
    clear_settings_cache,
)

__all__ = [
    'AislewiseSettings',
    'OpenAISettings',
    'get_settings',
    'get_openai_settings',
    'clear_settings_cache',
]
