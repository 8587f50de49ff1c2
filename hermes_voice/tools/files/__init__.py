"""Vault file and folder tools."""
