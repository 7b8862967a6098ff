"""
Service Layer Module Initialization
"""

from gemini_proxy.services.error_translator import translate_error
from gemini_proxy.services.gemini_adapter import GeminiAdapter
from gemini_proxy.services.stream_coordinator import StreamCoordinator

__all__ = [
    "GeminiAdapter",
    "StreamCoordinator",
    "translate_error",
]
