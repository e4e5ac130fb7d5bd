"""Operator window."""
