"""
Schemas - Structured Output Models for LLM Responses

This module defines Pydantic models used for structured LLM outputs.
They validate the JSON the model returns when asked to extract a location,
both inside the weather workflow and in the direct (non-workflow) mode.
"""
from pydantic import BaseModel, Field


class LocationExtraction(BaseModel):
    """
    The location the LLM found in the user's query.
    A confidence of 0 means no location could be determined.
    """
    city: str = Field(
        ...,
        description="City name as written by the user, or an empty string if unknown."
    )
    country: str = Field(
        ...,
        description="ISO 3166-1 alpha-2 country code such as CN or US."
    )
    confidence: float = Field(
        ...,
        ge=0.0,
        le=1.0,
        description="How sure the extraction is, from 0 (no location) to 1."
    )
