from .provider import AzureOpenAIProvider

__all__ = ["AzureOpenAIProvider"]
