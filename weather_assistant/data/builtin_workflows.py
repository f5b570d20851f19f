from typing import List

from weather_assistant.domain.models import LLMStep, ToolStep, WorkflowDefinition
from weather_assistant.schemas.location import LocationExtraction

WEATHER_QUERY = "weather_query"

# ==============================================================================
# PROMPTS
# ==============================================================================

PARSE_LOCATION_PROMPT = """Extract the geographic location from this request: "{{input}}"

Reply with JSON only, in this format:
{
  "city": "city name",
  "country": "country code such as CN or US",
  "confidence": 0.9
}

If the location cannot be determined, set confidence to 0 and leave city empty."""

FORMAT_RESPONSE_PROMPT = """Turn the following weather data into a friendly reply.

Weather data: {{getWeather}}
Original query: {{input}}

Requirements:
1. Answer in the language of the original query, in a natural and friendly tone.
2. Include the key facts: temperature, conditions, humidity and wind speed.
3. Add practical advice (clothing, travel) when it is useful.
4. Keep it short but complete.

If there is no weather data, politely explain that the weather for this location is unavailable."""


# ==============================================================================
# WORKFLOW DEFINITIONS
# ==============================================================================

def weather_query_workflow(confidence_threshold: float = 0.5) -> WorkflowDefinition:
    """
    parseLocation -> getWeather (only when the location is confident enough) -> formatResponse
    """
    return WorkflowDefinition(
        name=WEATHER_QUERY,
        description="Answers a natural-language weather question.",
        steps=(
            # --- STEP 1: find the city in the user's text ---
            LLMStep(
                id="parseLocation",
                prompt_template=PARSE_LOCATION_PROMPT,
                output_schema=LocationExtraction,
                temperature=0.3,
            ),
            # --- STEP 2: current weather for that city ---
            ToolStep(
                id="getWeather",
                tool_name="weather",
                condition=f"{{{{parseLocation.confidence}}}} > {confidence_threshold}",
                input_template={
                    "city": "{{parseLocation.city}}",
                    "country": "{{parseLocation.country}}",
                },
            ),
            # --- STEP 3: natural-language reply (runs even without weather data) ---
            LLMStep(
                id="formatResponse",
                prompt_template=FORMAT_RESPONSE_PROMPT,
                temperature=0.8,
                max_tokens=500,
            ),
        ),
        output_step="formatResponse",
    )


def builtin_workflows(confidence_threshold: float = 0.5) -> List[WorkflowDefinition]:
    return [weather_query_workflow(confidence_threshold)]
