"""Command-line client for Google's Gemini models."""

__version__ = '0.3.0'
