"""Text-generation abstractions for segmentation and analysis.

This package defines the OpenAI chat client, the prompt library, and the
analyzer used by the text stages.
"""

from .analyzer import TextAnalyzer
from .openai_client import OpenAIChatClient, OpenAIProviderError
from .prompts import PromptLibrary

__all__ = [
    "OpenAIChatClient",
    "OpenAIProviderError",
    "PromptLibrary",
    "TextAnalyzer",
]
