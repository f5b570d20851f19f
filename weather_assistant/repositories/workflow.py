from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional

from ..domain.models import WorkflowDefinition
from ..exceptions import ConfigurationError, WorkflowNotFoundError
from ..data.builtin_workflows import builtin_workflows


# The Interface
class WorkflowRepository(ABC):
    """
    Defines how the application accesses Workflow definitions.
    This allows us change how definitions are loaded (Python -> files -> API) later
    without changing the WorkflowEngine code.
    """

    @abstractmethod
    def get_workflow(self, workflow_id: str) -> WorkflowDefinition:
        """
        Retrieves a workflow by name.
        Raises WorkflowNotFoundError if not found.
        """
        pass

    @abstractmethod
    def list_workflows(self) -> List[WorkflowDefinition]:
        pass


class StaticWorkflowRepository(WorkflowRepository):
    """
    Serves workflows defined in Python, loaded once at startup.
    """

    def __init__(self, workflows: Optional[Iterable[WorkflowDefinition]] = None):
        if workflows is None:
            workflows = builtin_workflows()

        # Index for O(1) lookup
        self._index: Dict[str, WorkflowDefinition] = {}
        for workflow in workflows:
            if workflow.name in self._index:
                raise ConfigurationError(f"Duplicate workflow name '{workflow.name}'.")
            self._index[workflow.name] = workflow

    def get_workflow(self, workflow_id: str) -> WorkflowDefinition:
        if workflow_id not in self._index:
            raise WorkflowNotFoundError(workflow_id)
        return self._index[workflow_id]

    def list_workflows(self) -> List[WorkflowDefinition]:
        return list(self._index.values())
