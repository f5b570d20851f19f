"""
Schemas - Structured Output Models for LLM Responses

Defines Pydantic models used for structured LLM outputs, ensuring
predictable and parseable results from location extraction.
"""

from weather_assistant.schemas.location import LocationExtraction

__all__ = [
    "LocationExtraction",
]
