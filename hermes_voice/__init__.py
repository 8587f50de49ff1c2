"""
Hermes Voice: realtime voice conversations with a Gemini Live model that can
manage a markdown vault through tool calls.
"""

__version__ = "0.3.0"
