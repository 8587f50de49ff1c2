"""Provider-specific tool schema adapters."""
