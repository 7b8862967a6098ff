"""
Gemini OpenAI Proxy

Exposes an OpenAI-compatible HTTP API backed by the Google Gemini API.
"""

__version__ = "0.1.0"
