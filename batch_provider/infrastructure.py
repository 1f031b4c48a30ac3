"""
Pool and job bootstrap.

The pool and job are shared by every pod and live as long as the provider.
They are created with default parameters when missing and left untouched
when they already exist. Creating a pool provisions billable VMs.
"""

import logging
import time
from dataclasses import dataclass

from azure.batch.models import (
    AllocationState,
    CloudJob,
    CloudPool,
    ImageReference,
    JobAddParameter,
    PoolAddParameter,
    PoolInformation,
    VirtualMachineConfiguration,
)

from .config import BatchConfig
from .errors import InfrastructureError
from .task_store import TaskStore

# Ubuntu image with docker preinstalled
POOL_IMAGE = ImageReference(
    publisher="microsoft-azure-batch",
    offer="ubuntu-server-container",
    sku="20-04-lts",
    version="latest",
)
POOL_NODE_AGENT_SKU = "batch.node.ubuntu 20.04"
POOL_POLL_INTERVAL = 10  # seconds


@dataclass
class Infrastructure:
    pool: CloudPool
    job: CloudJob


def build_pool_spec(config: BatchConfig) -> PoolAddParameter:
    return PoolAddParameter(
        id=config.pool_id,
        vm_size=config.pool_vm_size,
        virtual_machine_configuration=VirtualMachineConfiguration(
            image_reference=POOL_IMAGE,
            node_agent_sku_id=POOL_NODE_AGENT_SKU,
        ),
        target_dedicated_nodes=config.pool_node_count,
    )


def build_job_spec(config: BatchConfig) -> JobAddParameter:
    # No wall clock constraint: the job outlives any single pod
    return JobAddParameter(
        id=config.job_id,
        pool_info=PoolInformation(pool_id=config.pool_id),
    )


def ensure_pool(store: TaskStore, config: BatchConfig) -> CloudPool:
    return store.create_or_get_pool(build_pool_spec(config))


def ensure_job(store: TaskStore, config: BatchConfig) -> CloudJob:
    return store.create_or_get_job(build_job_spec(config))


def wait_for_pool_ready(store: TaskStore, config: BatchConfig, pool: CloudPool) -> CloudPool:
    """Poll until the pool's allocation is steady, for at most pool_ready_timeout seconds"""
    logger = logging.getLogger(__name__)

    if config.pool_ready_timeout <= 0:
        return pool

    deadline = time.monotonic() + config.pool_ready_timeout
    while True:
        if pool.resize_errors:
            details = "; ".join(f"{e.code}: {e.message}" for e in pool.resize_errors)
            raise InfrastructureError(f"Pool {pool.id} failed to resize: {details}")

        if pool.allocation_state in (AllocationState.steady, "steady"):
            logger.info(f"✅ Pool {pool.id} is steady")
            return pool

        if time.monotonic() >= deadline:
            raise InfrastructureError(
                f"Pool {pool.id} not steady after {config.pool_ready_timeout} seconds "
                f"(allocation state: {pool.allocation_state})"
            )

        logger.info(f"⏳ Waiting for pool {pool.id} (allocation state: {pool.allocation_state})")
        time.sleep(POOL_POLL_INTERVAL)
        pool = store.get_pool(pool.id)


def ensure_infrastructure(store: TaskStore, config: BatchConfig) -> Infrastructure:
    logger = logging.getLogger(__name__)

    try:
        pool = ensure_pool(store, config)
        pool = wait_for_pool_ready(store, config, pool)
        job = ensure_job(store, config)
    except InfrastructureError:
        raise
    except Exception as e:
        logger.error(f"💥 Failed to bootstrap pool {config.pool_id} / job {config.job_id}: {e}")
        raise InfrastructureError(f"Failed to bootstrap pool {config.pool_id} / job {config.job_id}: {e}") from e

    logger.info(f"Using pool {pool.id} and job {job.id}")
    return Infrastructure(pool=pool, job=job)
