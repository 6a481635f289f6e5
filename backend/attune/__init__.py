"""Attention-driven content format engine."""

__version__ = "0.1.0"
