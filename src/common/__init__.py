"""Shared helpers used across the resolver and CLI layers."""
