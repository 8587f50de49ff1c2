"""
Default value application for configuration.

This module handles:
- Vault root / trash folder defaults with environment overrides
- Voice name override
- The built-in base system instruction
"""

import os
from typing import Any, Dict


DEFAULT_SYSTEM_INSTRUCTION = """You are Hermes, a voice assistant with access to the user's markdown vault.

CORE RESPONSE RULES:
1. NO CONFIRMATIONS: Do not say "Done." or similar after a tool call. The UI shows what happened.
2. INFORMATIONAL TOOLS: When calling "read_file", "list_directory" or "list_vault_files", stay silent unless the user asked about the content.
3. BATCH ACTIONS: When performing several modifications, wait until all are finished, then give one short summary.
4. Be concise. Avoid conversational filler.
5. LARGE VAULTS: Prefer "list_vault_files" with a limit or filter over "list_directory".
6. FILE NAMING: Never read out the .md extension or full paths unless relevant.

PATH CONVENTION:
All file paths are relative to the vault root, e.g. "notes.md" or "projects/ideas.md"."""


def apply_vault_defaults(config_data: Dict[str, Any]) -> None:
    """
    Apply vault defaults with environment variable overrides.

    Environment variables:
    - HERMES_VAULT_ROOT: Override vault root directory
    """
    vault_cfg = config_data.get('vault') or {}
    env_root = os.getenv('HERMES_VAULT_ROOT', '').strip()
    if env_root:
        vault_cfg['root'] = env_root
    vault_cfg.setdefault('root', 'vault')
    vault_cfg.setdefault('trash_folder', 'chat history/trash')
    config_data['vault'] = vault_cfg


def apply_voice_defaults(config_data: Dict[str, Any]) -> None:
    """
    Apply voice defaults.

    Environment variables:
    - HERMES_VOICE_NAME: Override the prebuilt voice name
    """
    voice_cfg = config_data.get('voice') or {}
    env_voice = os.getenv('HERMES_VOICE_NAME', '').strip()
    if env_voice:
        voice_cfg['voice_name'] = env_voice
    config_data['voice'] = voice_cfg
