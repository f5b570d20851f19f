"""
Template name constants.

Pure constants - no I/O or file system knowledge.
"""


class Template:
    """Template name constants. Use these instead of raw strings."""

    LOCATION_SYSTEM = "location_system"
    LOCATION_REQUEST = "location_request"
    WEATHER_REPLY_SYSTEM = "weather_reply_system"
    WEATHER_REPLY_REQUEST = "weather_reply_request"
