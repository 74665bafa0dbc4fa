"""
Models package for provider-neutral language-model responses.
"""

from .model_response import ModelResponse, TokenUsage

__all__ = ["ModelResponse", "TokenUsage"]
