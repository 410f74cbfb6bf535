"""Clarity: personal finance tracking API with AI-assisted transaction entry."""

__version__ = "1.0.0"
