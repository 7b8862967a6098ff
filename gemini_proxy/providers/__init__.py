"""
Backend provider clients
"""

from gemini_proxy.providers.base import ProviderClient
from gemini_proxy.providers.gemini_client import GeminiClient

__all__ = [
    "ProviderClient",
    "GeminiClient",
]
