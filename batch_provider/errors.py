"""
Exceptions raised by the Azure Batch pod provider.

Remote failures from the Batch service (``BatchErrorException``, transport
and auth errors) are not wrapped: they propagate to the caller unmodified.
"""

from typing import Optional


class BatchProviderError(Exception):
    """Base class for provider errors"""


class ConfigurationError(BatchProviderError):
    """Provider configuration is missing or invalid"""


class InfrastructureError(BatchProviderError):
    """The pool or job could not be created or is not usable"""


class CommandGenerationError(BatchProviderError):
    """A pod spec could not be turned into a task command line"""


class NotFoundError(BatchProviderError):
    """A task, file or pod does not exist"""


class TaskNotFoundError(NotFoundError):
    def __init__(self, job_id: str, task_id: str):
        super().__init__(f"Task {task_id} not found in job {job_id}")
        self.job_id = job_id
        self.task_id = task_id


class TaskFileNotFoundError(NotFoundError):
    def __init__(self, job_id: str, task_id: str, file_path: str):
        super().__init__(f"File {file_path} not found for task {task_id} in job {job_id}")
        self.job_id = job_id
        self.task_id = task_id
        self.file_path = file_path


class PodNotFoundError(NotFoundError):
    def __init__(self, namespace: str, name: str, operation: str):
        super().__init__(f"{operation}: pod {namespace}/{name} not found")
        self.namespace = namespace
        self.name = name
        self.operation = operation


class LogsNotFoundError(NotFoundError):
    def __init__(self, namespace: str, name: str, file_path: str):
        super().__init__(f"No log file {file_path} for pod {namespace}/{name}")
        self.namespace = namespace
        self.name = name
        self.file_path = file_path


class TaskExistsError(BatchProviderError):
    """A task with the derived identifier already exists in the job"""

    def __init__(self, job_id: str, task_id: str):
        super().__init__(f"Task {task_id} already exists in job {job_id}")
        self.job_id = job_id
        self.task_id = task_id


class PodTranslationError(BatchProviderError):
    """A task does not carry a usable embedded pod payload"""

    def __init__(self, task_id: Optional[str], reason: str):
        super().__init__(f"Cannot reconstruct pod from task {task_id}: {reason}")
        self.task_id = task_id
        self.reason = reason
