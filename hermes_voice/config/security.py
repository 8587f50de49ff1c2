"""
Security-critical configuration injection.

SECURITY POLICY:
- The Gemini API key MUST NEVER be in YAML files
- It comes from GEMINI_API_KEY or GOOGLE_API_KEY only, overriding any YAML value
"""

import os
from typing import Any, Dict


def _is_nonempty_string(val: Any) -> bool:
    return isinstance(val, str) and val.strip() != ""


def inject_gemini_api_key(config_data: Dict[str, Any]) -> None:
    """
    Inject the Gemini API key from environment variables ONLY.

    Environment variables (first non-empty wins):
    - GEMINI_API_KEY
    - GOOGLE_API_KEY

    Args:
        config_data: Configuration dictionary to modify in-place
    """
    gemini_cfg = config_data.get('gemini')
    if not isinstance(gemini_cfg, dict):
        gemini_cfg = {}

    api_key = None
    for var in ("GEMINI_API_KEY", "GOOGLE_API_KEY"):
        candidate = os.getenv(var)
        if _is_nonempty_string(candidate):
            api_key = candidate.strip()
            break

    gemini_cfg['api_key'] = api_key
    config_data['gemini'] = gemini_cfg
