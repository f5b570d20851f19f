"""
Service Layer Exceptions

Custom exceptions for the WeatherAssistantService and related orchestration logic.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..state.models import WorkflowRun


class ServiceError(Exception):
    pass


class LocationNotResolvedError(ServiceError):
    """Raised when no location with sufficient confidence was found in the query."""
    pass


class BatchLimitError(ServiceError):
    """Raised when a batch request is empty or exceeds the configured size."""
    pass


class WorkflowRunFailedError(ServiceError):
    """Raised when the workflow run ended in the FAILED state."""

    def __init__(self, run: "WorkflowRun"):
        super().__init__(run.error or f"Workflow '{run.workflow}' failed.")
        self.run = run
