"""
Shared fixtures: an in-memory task store and sample pods.
"""

from collections import OrderedDict
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Optional

import pytest
from azure.batch.models import (
    AllocationState,
    CloudJob,
    CloudPool,
    CloudTask,
    ErrorCategory,
    JobAddParameter,
    PoolAddParameter,
    PoolInformation,
    TaskAddParameter,
    TaskExecutionInformation,
    TaskFailureInformation,
    TaskState,
)
from kubernetes.client import (
    V1Container,
    V1EmptyDirVolumeSource,
    V1EnvVar,
    V1ObjectMeta,
    V1Pod,
    V1PodSpec,
    V1Volume,
    V1VolumeMount,
)

from batch_provider.config import BatchConfig
from batch_provider.errors import TaskExistsError, TaskFileNotFoundError, TaskNotFoundError
from batch_provider.provider import BatchPodProvider
from batch_provider.task_store import TaskStore


class FakeTaskStore(TaskStore):
    """In-memory TaskStore with paging and failure injection"""

    def __init__(self, page_size: int = 2):
        self.page_size = page_size
        self.pools: Dict[str, CloudPool] = {}
        self.jobs: Dict[str, CloudJob] = {}
        self.tasks: Dict[str, "OrderedDict[str, CloudTask]"] = {}
        self.files: Dict[tuple, bytes] = {}
        self.fail_on: Dict[str, Exception] = {}
        self.fail_on_page: Optional[int] = None
        self.pools_created = 0
        self.jobs_created = 0

    def _maybe_fail(self, operation: str) -> None:
        error = self.fail_on.get(operation)
        if error is not None:
            raise error

    def _job_tasks(self, job_id: str) -> "OrderedDict[str, CloudTask]":
        return self.tasks.setdefault(job_id, OrderedDict())

    def create_or_get_pool(self, pool: PoolAddParameter) -> CloudPool:
        self._maybe_fail("create_or_get_pool")
        if pool.id not in self.pools:
            self.pools_created += 1
            self.pools[pool.id] = CloudPool(
                id=pool.id,
                vm_size=pool.vm_size,
                target_dedicated_nodes=pool.target_dedicated_nodes,
                allocation_state=AllocationState.steady,
            )
        return self.pools[pool.id]

    def get_pool(self, pool_id: str) -> CloudPool:
        self._maybe_fail("get_pool")
        return self.pools[pool_id]

    def create_or_get_job(self, job: JobAddParameter) -> CloudJob:
        self._maybe_fail("create_or_get_job")
        if job.id not in self.jobs:
            self.jobs_created += 1
            self.jobs[job.id] = CloudJob(id=job.id, pool_info=PoolInformation(pool_id=job.pool_info.pool_id))
        return self.jobs[job.id]

    def add_task(self, job_id: str, task: TaskAddParameter) -> None:
        self._maybe_fail("add_task")
        tasks = self._job_tasks(job_id)
        if task.id in tasks:
            raise TaskExistsError(job_id, task.id)
        tasks[task.id] = CloudTask(
            id=task.id,
            display_name=task.display_name,
            command_line=task.command_line,
            user_identity=task.user_identity,
            environment_settings=task.environment_settings,
            state=TaskState.active,
            creation_time=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )

    def get_task(self, job_id: str, task_id: str) -> CloudTask:
        self._maybe_fail("get_task")
        try:
            return self._job_tasks(job_id)[task_id]
        except KeyError:
            raise TaskNotFoundError(job_id, task_id)

    def delete_task(self, job_id: str, task_id: str) -> None:
        self._maybe_fail("delete_task")
        tasks = self._job_tasks(job_id)
        if task_id not in tasks:
            raise TaskNotFoundError(job_id, task_id)
        del tasks[task_id]

    def list_task_pages(self, job_id: str) -> Iterator[List[CloudTask]]:
        tasks = list(self._job_tasks(job_id).values())
        for index, start in enumerate(range(0, len(tasks), self.page_size)):
            if self.fail_on_page == index:
                raise ConnectionError(f"page {index} failed")
            yield tasks[start:start + self.page_size]

    def read_task_file(self, job_id: str, task_id: str, file_path: str) -> bytes:
        self._maybe_fail("read_task_file")
        if task_id not in self._job_tasks(job_id):
            raise TaskNotFoundError(job_id, task_id)
        try:
            return self.files[(job_id, task_id, file_path)]
        except KeyError:
            raise TaskFileNotFoundError(job_id, task_id, file_path)

    # helpers for tests

    def put_task(self, job_id: str, task: CloudTask) -> None:
        self._job_tasks(job_id)[task.id] = task

    def complete_task(self, job_id: str, task_id: str, exit_code: Optional[int], failure_message: Optional[str] = None) -> CloudTask:
        task = self._job_tasks(job_id)[task_id]
        task.state = TaskState.completed
        task.state_transition_time = datetime(2024, 1, 1, 0, 10, tzinfo=timezone.utc)
        failure = None
        if failure_message is not None:
            failure = TaskFailureInformation(category=ErrorCategory.user_error, code="FailureExitCode", message=failure_message)
        task.execution_info = TaskExecutionInformation(
            retry_count=0,
            requeue_count=0,
            exit_code=exit_code,
            start_time=datetime(2024, 1, 1, 0, 1, tzinfo=timezone.utc),
            end_time=datetime(2024, 1, 1, 0, 9, tzinfo=timezone.utc),
            failure_info=failure,
        )
        return task


def make_pod(namespace: str = "default", name: str = "web", containers: Optional[List[V1Container]] = None) -> V1Pod:
    if containers is None:
        containers = [
            V1Container(
                name="app",
                image="nginx:1.25",
                command=["nginx"],
                args=["-g", "daemon off;"],
                env=[V1EnvVar(name="MODE", value="test")],
                volume_mounts=[V1VolumeMount(name="scratch", mount_path="/scratch")],
            )
        ]
    return V1Pod(
        api_version="v1",
        kind="Pod",
        metadata=V1ObjectMeta(
            namespace=namespace,
            name=name,
            uid=f"uid-{namespace}-{name}",
            labels={"app": name},
        ),
        spec=V1PodSpec(
            containers=containers,
            volumes=[V1Volume(name="scratch", empty_dir=V1EmptyDirVolumeSource())],
        ),
    )


@pytest.fixture
def config():
    return BatchConfig(
        account_name="testbatch",
        account_location="westeurope",
        pool_id="vk-pool",
        job_id="vk-job",
        internal_ip="10.0.0.4",
    )


@pytest.fixture
def store():
    return FakeTaskStore(page_size=2)


@pytest.fixture
def pod():
    return make_pod()


@pytest.fixture
def pod_factory():
    return make_pod


@pytest.fixture
def provider(config, store):
    return BatchPodProvider(config, store)
