"""Shared Temporal components."""
