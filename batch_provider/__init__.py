"""
Azure Batch Pod Provider

Runs Kubernetes pods as Azure Batch tasks: pods are submitted as tasks in a
shared job on a Batch pool, and pod status is derived from task state.
"""

from .config import BatchConfig
from .errors import (
    BatchProviderError,
    CommandGenerationError,
    ConfigurationError,
    InfrastructureError,
    LogsNotFoundError,
    NotFoundError,
    PodNotFoundError,
    PodTranslationError,
    TaskExistsError,
    TaskFileNotFoundError,
    TaskNotFoundError,
)
from .identifiers import task_id_for, task_id_for_pod
from .provider import BatchPodProvider, PodListing
from .status import PodPhase, to_pod_status
from .task_store import BatchTaskStore, TaskStore

__all__ = [
    'BatchConfig',
    'BatchPodProvider',
    'BatchProviderError',
    'BatchTaskStore',
    'CommandGenerationError',
    'ConfigurationError',
    'InfrastructureError',
    'LogsNotFoundError',
    'NotFoundError',
    'PodListing',
    'PodNotFoundError',
    'PodPhase',
    'PodTranslationError',
    'TaskExistsError',
    'TaskFileNotFoundError',
    'TaskNotFoundError',
    'TaskStore',
    'task_id_for',
    'task_id_for_pod',
    'to_pod_status'
]
