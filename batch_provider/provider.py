"""
Azure Batch pod provider

Runs Kubernetes pods as tasks in a single Azure Batch job. Every pod maps to
exactly one task whose id is derived from the pod's namespace and name; the
task carries the serialized pod so the pod can be rebuilt from the remote
task store alone. Pod status is recomputed from the task's state on every
request.

Each public operation is a blocking round trip against the Batch service,
run off the event loop with ``asyncio.to_thread``. Cancelling the awaiting
coroutine (or a caller-side ``asyncio.wait_for`` deadline) returns control to
the caller at once, but the remote request itself is not cancelled: the SDK
call keeps running in its worker thread until it completes or
``request_timeout`` expires. Nothing is retried.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from kubernetes.client import (
    V1NodeAddress,
    V1NodeCondition,
    V1NodeDaemonEndpoints,
    V1Pod,
    V1PodStatus,
)

from .config import BatchConfig
from .errors import (
    LogsNotFoundError,
    PodNotFoundError,
    PodTranslationError,
    TaskFileNotFoundError,
    TaskNotFoundError,
)
from .identifiers import task_id_for, task_id_for_pod
from .infrastructure import ensure_infrastructure
from .lookup import TaskLookup, pod_with_status
from .node import VirtualNode
from .pod_command import CommandGenerator, get_bash_command
from .submitter import submit_pod
from .task_store import TaskStore, create_task_store

STDOUT_FILE = "stdout.txt"
STDERR_FILE = "stderr.txt"
# Container logs are written by the task command into its working directory
TASK_WORKING_DIR = "wd"

_OUTPUT_FILES = {
    "stdout": STDOUT_FILE,
    "stderr": STDERR_FILE,
}


@dataclass
class PodListing:
    """Pods rebuilt from the job's tasks, plus the tasks that could not be rebuilt"""
    pods: List[V1Pod] = field(default_factory=list)
    failures: List[PodTranslationError] = field(default_factory=list)


class BatchPodProvider:
    """Create, update, delete and inspect pods backed by Azure Batch tasks.

    The pool and job are created (or found) when the provider is built; any
    failure there raises InfrastructureError and no provider is returned.
    """

    def __init__(
        self,
        config: BatchConfig,
        store: TaskStore,
        command_generator: CommandGenerator = get_bash_command,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config
        self.store = store
        self.command_generator = command_generator
        self.logger = logger or logging.getLogger(__name__)

        self.logger.info(f"🚀 Starting batch provider for pool {config.pool_id}, job {config.job_id}")
        self.infrastructure = ensure_infrastructure(store, config)
        self.lookup = TaskLookup(store, config.job_id, logger=self.logger)
        self.node = VirtualNode(config)

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None, **kwargs) -> "BatchPodProvider":
        config = BatchConfig.from_env(environ)
        return cls(config, create_task_store(config), **kwargs)

    @property
    def job_id(self) -> str:
        return self.config.job_id

    def _log_failure(self, operation: str, namespace: str, name: str, error: Exception) -> None:
        self.logger.error(f"❌ {operation} failed for pod {namespace}/{name}: {error}")

    async def create_pod(self, pod: V1Pod) -> None:
        """Submit the pod's task.

        The caller must not create a pod that already exists: a duplicate
        raises TaskExistsError, the existing task is left as is.
        """
        namespace, name = pod.metadata.namespace, pod.metadata.name
        self.logger.info(f"Creating pod {namespace}/{name}")
        try:
            await asyncio.to_thread(submit_pod, self.store, self.job_id, pod, self.command_generator)
        except Exception as e:
            self._log_failure("create_pod", namespace, name, e)
            raise

    async def update_pod(self, pod: V1Pod) -> None:
        """Replace the pod by deleting its task and submitting a new one.

        Not atomic: between the delete and the create there is no task for
        the pod, and get_pod reports it as absent. If the create fails the
        pod stays absent.
        """
        namespace, name = pod.metadata.namespace, pod.metadata.name
        self.logger.info(f"Updating pod {namespace}/{name}")
        await self.delete_pod(pod)
        await self.create_pod(pod)

    async def delete_pod(self, pod: V1Pod) -> None:
        """Delete the pod's task. A pod with no task raises PodNotFoundError."""
        namespace, name = pod.metadata.namespace, pod.metadata.name
        task_id = task_id_for(pod)
        try:
            await asyncio.to_thread(self.store.delete_task, self.job_id, task_id)
        except TaskNotFoundError as e:
            self._log_failure("delete_pod", namespace, name, e)
            raise PodNotFoundError(namespace, name, "delete_pod") from e
        except Exception as e:
            self._log_failure("delete_pod", namespace, name, e)
            raise
        self.logger.info(f"🧹 Deleted task {task_id} for pod {namespace}/{name}")

    async def get_pod(self, namespace: str, name: str) -> Optional[V1Pod]:
        """The pod with its current status, or None if it has no task"""
        self.logger.debug(f"Getting pod {namespace}/{name}")
        try:
            task = await asyncio.to_thread(self.lookup.get_task, task_id_for_pod(namespace, name))
            if task is None:
                return None
            return pod_with_status(task)
        except Exception as e:
            self._log_failure("get_pod", namespace, name, e)
            raise

    async def get_pod_status(self, namespace: str, name: str) -> Optional[V1PodStatus]:
        pod = await self.get_pod(namespace, name)
        if pod is None:
            return None
        return pod.status

    async def get_pods(self) -> PodListing:
        """Every pod in the job.

        A task that cannot be turned back into a pod is reported in
        ``failures`` and skipped; it does not abort the listing. A remote
        failure while paging does.
        """
        self.logger.debug(f"Listing pods in job {self.job_id}")
        tasks = await asyncio.to_thread(self.lookup.list_tasks)

        listing = PodListing()
        for task in tasks:
            try:
                listing.pods.append(pod_with_status(task))
            except PodTranslationError as e:
                self.logger.warning(f"⚠️ Skipping task {task.id}: {e.reason}")
                listing.failures.append(e)

        self.logger.info(f"📊 Found {len(listing.pods)} pod(s), {len(listing.failures)} unreadable task(s)")
        return listing

    async def _read_pod_file(self, namespace: str, name: str, file_path: str, operation: str) -> bytes:
        task_id = task_id_for_pod(namespace, name)
        try:
            return await asyncio.to_thread(self.store.read_task_file, self.job_id, task_id, file_path)
        except TaskNotFoundError as e:
            self._log_failure(operation, namespace, name, e)
            raise PodNotFoundError(namespace, name, operation) from e
        except TaskFileNotFoundError as e:
            self._log_failure(operation, namespace, name, e)
            raise LogsNotFoundError(namespace, name, file_path) from e
        except Exception as e:
            self._log_failure(operation, namespace, name, e)
            raise

    async def get_container_logs(self, namespace: str, pod_name: str, container_name: str) -> bytes:
        """Raw captured output of one container, exactly as stored on the node"""
        if not container_name or "/" in container_name or container_name in (".", ".."):
            raise ValueError(f"Invalid container name: {container_name!r}")
        file_path = f"{TASK_WORKING_DIR}/{container_name}"
        return await self._read_pod_file(namespace, pod_name, file_path, "get_container_logs")

    async def get_task_output(self, namespace: str, pod_name: str, stream: str = "stdout") -> bytes:
        """stdout or stderr of the task's command line as a whole"""
        if stream not in _OUTPUT_FILES:
            raise ValueError(f"stream must be one of {sorted(_OUTPUT_FILES)}, got {stream!r}")
        return await self._read_pod_file(namespace, pod_name, _OUTPUT_FILES[stream], "get_task_output")

    def capacity(self) -> Dict[str, str]:
        return self.node.capacity()

    def node_conditions(self) -> List[V1NodeCondition]:
        return self.node.node_conditions()

    def node_addresses(self) -> List[V1NodeAddress]:
        return self.node.node_addresses()

    def node_daemon_endpoints(self) -> V1NodeDaemonEndpoints:
        return self.node.node_daemon_endpoints()

    @property
    def operating_system(self) -> str:
        return self.node.operating_system
