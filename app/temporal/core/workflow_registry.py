from typing import Dict, List, Type, Optional
from dataclasses import dataclass
from enum import Enum

from app.temporal.core.constants import DEFAULT_TASK_QUEUE


class WorkflowType(str, Enum):
    """Workflow categories."""
    SHARED = "shared"


@dataclass
class WorkflowMetadata:
    """Metadata for workflow discovery."""
    workflow_class: Type
    name: str
    category: WorkflowType
    task_queue: str


class WorkflowRegistry:
    """Central registry for all workflows."""

    _workflows: Dict[str, WorkflowMetadata] = {}

    @classmethod
    def register(cls, category: WorkflowType, task_queue: Optional[str] = None):
        """Decorator to register a workflow."""
        def decorator(workflow_class):
            cls._workflows[workflow_class.__name__] = WorkflowMetadata(
                workflow_class=workflow_class,
                name=workflow_class.__name__,
                category=category,
                task_queue=task_queue or DEFAULT_TASK_QUEUE,
            )
            return workflow_class
        return decorator

    @classmethod
    def get_all_workflows(cls) -> Dict[str, WorkflowMetadata]:
        """Get all registered workflows."""
        return cls._workflows

    @classmethod
    def get_by_queue(cls, task_queue: str) -> List[Type]:
        """Workflow classes polled on ``task_queue``."""
        return [w.workflow_class for w in cls._workflows.values() if w.task_queue == task_queue]
