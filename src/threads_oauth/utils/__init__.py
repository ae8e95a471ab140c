"""Shared helpers (environment parsing, log masking)."""
