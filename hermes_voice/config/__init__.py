"""
Configuration package for Hermes Voice.

This package contains:
- loaders: YAML file loading and parsing
- security: API key injection from the environment
- defaults: Default value application and the base system instruction
- models: Pydantic settings models and load_config()
"""

from hermes_voice.config.defaults import DEFAULT_SYSTEM_INSTRUCTION
from hermes_voice.config.models import (
    AppConfig,
    AudioConfig,
    GeminiLiveConfig,
    LoggingConfig,
    ToolsConfig,
    VaultConfig,
    VoiceSettings,
    load_config,
    validate_config,
)

__all__ = [
    'AppConfig',
    'AudioConfig',
    'GeminiLiveConfig',
    'LoggingConfig',
    'ToolsConfig',
    'VaultConfig',
    'VoiceSettings',
    'DEFAULT_SYSTEM_INSTRUCTION',
    'load_config',
    'validate_config',
]
