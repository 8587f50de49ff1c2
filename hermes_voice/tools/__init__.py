"""
Tool calling system for Hermes Voice.

Vault commands the model can invoke over the realtime channel, the registry
that dispatches them, and the Gemini schema adapter.
"""
