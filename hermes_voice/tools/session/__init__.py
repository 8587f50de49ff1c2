"""Conversation control tools."""
