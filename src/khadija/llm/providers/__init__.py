from .gemini import GeminiChatBackend

__all__ = ["GeminiChatBackend"]
