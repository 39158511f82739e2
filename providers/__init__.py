from .base import GenerateOptions, GenerationProvider, SearchResult
from .gemini import GeminiProvider

__all__ = ["GenerateOptions", "GenerationProvider", "SearchResult", "GeminiProvider"]
