from .openai_client import JsonSchemaFormat, LLMResponseError, OpenAITextClient, RequestMetadata

__all__ = ["JsonSchemaFormat", "LLMResponseError", "OpenAITextClient", "RequestMetadata"]
