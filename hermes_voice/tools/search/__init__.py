"""Vault-wide search and replace tools."""
