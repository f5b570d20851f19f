"""
Prompts for the direct (non-workflow) query mode, rendered with Jinja2.
"""

from weather_assistant.prompts.loader import render
from weather_assistant.prompts.templates import Template

__all__ = [
    "Template",
    "render",
]
