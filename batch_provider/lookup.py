"""
Task lookup and enumeration within the provider's job.
"""

import logging
from typing import List, Optional

from azure.batch.models import CloudTask
from kubernetes.client import V1Pod

from .errors import TaskNotFoundError
from .serialization import pod_from_task
from .status import to_pod_status
from .task_store import TaskStore


class TaskLookup:
    def __init__(self, store: TaskStore, job_id: str, logger: Optional[logging.Logger] = None):
        self.store = store
        self.job_id = job_id
        self.logger = logger or logging.getLogger(__name__)

    def get_task(self, task_id: str) -> Optional[CloudTask]:
        """Fetch one task; a missing task is None, not an error"""
        try:
            return self.store.get_task(self.job_id, task_id)
        except TaskNotFoundError:
            self.logger.debug(f"Task {task_id} not found in job {self.job_id}")
            return None

    def list_tasks(self) -> List[CloudTask]:
        """Every task in the job, in listing order.

        All pages are drained before returning; a failure on any page
        propagates and no partial list is returned.
        """
        tasks: List[CloudTask] = []
        pages = 0
        for page in self.store.list_task_pages(self.job_id):
            pages += 1
            tasks.extend(page)
        self.logger.debug(f"Listed {len(tasks)} task(s) in job {self.job_id} over {pages} page(s)")
        return tasks


def pod_with_status(task: CloudTask) -> V1Pod:
    """Reconstruct the task's pod with a freshly derived status"""
    pod = pod_from_task(task)
    pod.status = to_pod_status(task, pod)
    return pod
