"""
Configuration models for Hermes Voice.

Pydantic v2 models for validation and type safety, loaded from a YAML file
with environment expansion.
"""

from typing import List, Optional

from pydantic import BaseModel, Field
import structlog

from hermes_voice.config.loaders import candidate_config_paths, find_config_file, load_yaml_with_env_expansion
from hermes_voice.config.security import inject_gemini_api_key
from hermes_voice.config.defaults import apply_vault_defaults, apply_voice_defaults

logger = structlog.get_logger(__name__)


class GeminiLiveConfig(BaseModel):
    api_key: Optional[str] = None
    model: str = Field(default="gemini-2.5-flash-native-audio-preview-12-2025")
    endpoint: str = Field(
        default="wss://generativelanguage.googleapis.com/ws/google.ai.generativelanguage.v1beta.GenerativeService.BidiGenerateContent"
    )
    response_modalities: List[str] = Field(default_factory=lambda: ["AUDIO"])
    enable_input_transcription: bool = Field(default=True)
    enable_output_transcription: bool = Field(default=True)
    setup_timeout_sec: float = Field(default=5.0)
    max_message_bytes: int = Field(default=10 * 1024 * 1024)


class VoiceSettings(BaseModel):
    voice_name: str = Field(default="Aoede")
    # None -> built-in instruction plus the registered tools' guidance
    system_instruction: Optional[str] = None
    custom_context: str = Field(default="")


class AudioConfig(BaseModel):
    input_sample_rate_hz: int = Field(default=16000)
    output_sample_rate_hz: int = Field(default=24000)
    channels: int = Field(default=1)
    capture_block_size: int = Field(default=4096)
    outbound_queue_size: int = Field(default=32)
    input_device: Optional[str] = None
    output_device: Optional[str] = None
    keepalive_enabled: bool = Field(default=False)


class ToolsConfig(BaseModel):
    max_result_items: int = Field(default=100)
    max_result_chars: int = Field(default=50_000)
    disabled: List[str] = Field(default_factory=list)


class VaultConfig(BaseModel):
    root: str = Field(default="vault")
    trash_folder: str = Field(default="chat history/trash")


class LoggingConfig(BaseModel):
    level: str = Field(default="info")
    format: str = Field(default="console")
    to_file: bool = Field(default=False)
    file_path: str = Field(default="logs/hermes-voice-{ts}.log")


class AppConfig(BaseModel):
    gemini: GeminiLiveConfig = Field(default_factory=GeminiLiveConfig)
    voice: VoiceSettings = Field(default_factory=VoiceSettings)
    audio: AudioConfig = Field(default_factory=AudioConfig)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)
    vault: VaultConfig = Field(default_factory=VaultConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(path: Optional[str] = None) -> AppConfig:
    """
    Load configuration from YAML, apply defaults and inject secrets.

    See ``loaders`` for where the file is looked up. A missing file is not
    fatal: defaults are used and a warning is logged.
    """
    found = find_config_file(path)
    if found is None:
        logger.warning(
            "Configuration file not found, using defaults",
            searched=[str(p) for p in candidate_config_paths(path)],
        )
        config_data = {}
    else:
        logger.debug("Loading configuration", path=str(found))
        config_data = load_yaml_with_env_expansion(found)

    apply_vault_defaults(config_data)
    apply_voice_defaults(config_data)
    inject_gemini_api_key(config_data)

    return AppConfig(**config_data)


def validate_config(config: AppConfig) -> List[str]:
    """Return a list of configuration errors (empty when startable)."""
    errors = []
    if not config.gemini.api_key:
        errors.append("GEMINI_API_KEY (or GOOGLE_API_KEY) is required")
    if config.audio.channels != 1:
        errors.append("Only mono audio is supported (audio.channels must be 1)")
    if config.tools.max_result_items < 1:
        errors.append("tools.max_result_items must be positive")
    if config.tools.max_result_chars < 1:
        errors.append("tools.max_result_chars must be positive")
    return errors
