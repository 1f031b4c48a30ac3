"""
Task store capability and its Azure Batch implementation.

The provider only talks to the remote pool/job/task/file service through
``TaskStore``; tests substitute an in-memory store. ``BatchTaskStore``
translates the Batch "not found" and "already exists" responses into the
provider's error types and lets every other failure through unmodified.
No call is retried.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Iterator, List, Optional

from azure.batch import BatchServiceClient
from azure.batch.batch_auth import SharedKeyCredentials
from azure.batch.models import (
    BatchErrorException,
    CloudJob,
    CloudPool,
    CloudTask,
    FileGetFromTaskOptions,
    JobAddOptions,
    JobAddParameter,
    JobGetOptions,
    PoolAddOptions,
    PoolAddParameter,
    PoolGetOptions,
    TaskAddOptions,
    TaskAddParameter,
    TaskDeleteOptions,
    TaskGetOptions,
    TaskListOptions,
)
from azure.identity import DefaultAzureCredential
from msrest.authentication import BasicTokenAuthentication

from .config import BatchConfig
from .errors import TaskExistsError, TaskFileNotFoundError, TaskNotFoundError

BATCH_TOKEN_SCOPE = "https://batch.core.windows.net/.default"


class TaskStore(ABC):
    """Remote pool/job/task/file operations the provider depends on"""

    @abstractmethod
    def create_or_get_pool(self, pool: PoolAddParameter) -> CloudPool:
        ...

    @abstractmethod
    def get_pool(self, pool_id: str) -> CloudPool:
        ...

    @abstractmethod
    def create_or_get_job(self, job: JobAddParameter) -> CloudJob:
        ...

    @abstractmethod
    def add_task(self, job_id: str, task: TaskAddParameter) -> None:
        """Raises TaskExistsError if the task id is taken"""

    @abstractmethod
    def get_task(self, job_id: str, task_id: str) -> CloudTask:
        """Raises TaskNotFoundError if the task does not exist"""

    @abstractmethod
    def delete_task(self, job_id: str, task_id: str) -> None:
        """Raises TaskNotFoundError if the task does not exist"""

    @abstractmethod
    def list_task_pages(self, job_id: str) -> Iterator[List[CloudTask]]:
        """Yield the job's tasks one page at a time, in listing order"""

    @abstractmethod
    def read_task_file(self, job_id: str, task_id: str, file_path: str) -> bytes:
        """Raises TaskNotFoundError or TaskFileNotFoundError"""


def _status_code(error: BatchErrorException) -> Optional[int]:
    response = getattr(error, "response", None)
    return getattr(response, "status_code", None)


def _error_code(error: BatchErrorException) -> Optional[str]:
    return getattr(getattr(error, "error", None), "code", None)


def _is_not_found(error: BatchErrorException) -> bool:
    return _status_code(error) == 404


def _is_conflict(error: BatchErrorException) -> bool:
    return _status_code(error) == 409


class BatchTaskStore(TaskStore):
    def __init__(
        self,
        batch_client: BatchServiceClient,
        request_timeout: Optional[int] = None,
        page_size: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.batch_client = batch_client
        self.request_timeout = request_timeout
        self.page_size = page_size
        self.logger = logger or logging.getLogger(__name__)

    def _options(self, options_cls, **kwargs):
        if self.request_timeout is not None:
            kwargs["timeout"] = self.request_timeout
        return options_cls(**kwargs) if kwargs else None

    def get_pool(self, pool_id: str) -> CloudPool:
        return self.batch_client.pool.get(pool_id, pool_get_options=self._options(PoolGetOptions))

    def create_or_get_pool(self, pool: PoolAddParameter) -> CloudPool:
        try:
            return self.get_pool(pool.id)
        except BatchErrorException as e:
            if not _is_not_found(e):
                raise

        self.logger.info(f"🏗️ Creating batch pool: {pool.id} ({pool.vm_size}, {pool.target_dedicated_nodes} node(s))")
        try:
            self.batch_client.pool.add(pool, pool_add_options=self._options(PoolAddOptions))
        except BatchErrorException as e:
            # Created concurrently by another provider instance
            if not _is_conflict(e):
                raise
            self.logger.info(f"Pool {pool.id} already exists")
        return self.get_pool(pool.id)

    def create_or_get_job(self, job: JobAddParameter) -> CloudJob:
        try:
            return self.batch_client.job.get(job.id, job_get_options=self._options(JobGetOptions))
        except BatchErrorException as e:
            if not _is_not_found(e):
                raise

        self.logger.info(f"📋 Creating batch job: {job.id} on pool {job.pool_info.pool_id}")
        try:
            self.batch_client.job.add(job, job_add_options=self._options(JobAddOptions))
        except BatchErrorException as e:
            if not _is_conflict(e):
                raise
            self.logger.info(f"Job {job.id} already exists")
        return self.batch_client.job.get(job.id, job_get_options=self._options(JobGetOptions))

    def add_task(self, job_id: str, task: TaskAddParameter) -> None:
        try:
            self.batch_client.task.add(job_id=job_id, task=task, task_add_options=self._options(TaskAddOptions))
        except BatchErrorException as e:
            if _is_conflict(e):
                raise TaskExistsError(job_id, task.id) from e
            raise

    def get_task(self, job_id: str, task_id: str) -> CloudTask:
        try:
            return self.batch_client.task.get(job_id, task_id, task_get_options=self._options(TaskGetOptions))
        except BatchErrorException as e:
            if _is_not_found(e):
                raise TaskNotFoundError(job_id, task_id) from e
            raise

    def delete_task(self, job_id: str, task_id: str) -> None:
        try:
            self.batch_client.task.delete(job_id, task_id, task_delete_options=self._options(TaskDeleteOptions))
        except BatchErrorException as e:
            if _is_not_found(e):
                raise TaskNotFoundError(job_id, task_id) from e
            raise

    def list_task_pages(self, job_id: str) -> Iterator[List[CloudTask]]:
        list_kwargs = {}
        if self.page_size is not None:
            list_kwargs["max_results"] = self.page_size
        paged = self.batch_client.task.list(job_id, task_list_options=self._options(TaskListOptions, **list_kwargs))

        while True:
            try:
                page = paged.advance_page()
            except StopIteration:
                return
            yield list(page or [])

    def read_task_file(self, job_id: str, task_id: str, file_path: str) -> bytes:
        try:
            stream = self.batch_client.file.get_from_task(
                job_id, task_id, file_path,
                file_get_from_task_options=self._options(FileGetFromTaskOptions),
            )
            return b"".join(stream)
        except BatchErrorException as e:
            if not _is_not_found(e):
                raise
            if _error_code(e) in ("TaskNotFound", "JobNotFound"):
                raise TaskNotFoundError(job_id, task_id) from e
            raise TaskFileNotFoundError(job_id, task_id, file_path) from e


class AzureIdentityAuthentication(BasicTokenAuthentication):
    """msrest authentication backed by an azure-identity credential.

    azure-batch signs requests through msrest, which cannot use
    azure-identity credentials directly. The bearer token is refreshed
    shortly before it expires so a long-lived provider keeps working.
    """

    refresh_margin = 300  # seconds

    def __init__(self, credential=None, scope: str = BATCH_TOKEN_SCOPE):
        super().__init__({"access_token": ""})
        self.credential = credential or DefaultAzureCredential()
        self.scope = scope
        self.expires_on = 0

    def signed_session(self, session=None):
        if time.time() >= self.expires_on - self.refresh_margin:
            access_token = self.credential.get_token(self.scope)
            self.token = {"access_token": access_token.token}
            self.expires_on = access_token.expires_on
        return super().signed_session(session)


def create_batch_client(config: BatchConfig) -> BatchServiceClient:
    """Build a Batch client using the account key if set, otherwise Azure AD"""
    logger = logging.getLogger(__name__)

    if config.account_key:
        credentials = SharedKeyCredentials(config.account_name, config.account_key)
        logger.info(f"Using shared key authentication for batch account {config.account_name}")
    else:
        credentials = AzureIdentityAuthentication()
        logger.info(f"Using Azure AD authentication for batch account {config.account_name}")

    return BatchServiceClient(credentials=credentials, batch_url=config.account_url)


def create_task_store(config: BatchConfig) -> BatchTaskStore:
    return BatchTaskStore(
        create_batch_client(config),
        request_timeout=config.request_timeout,
        page_size=config.list_page_size,
    )
