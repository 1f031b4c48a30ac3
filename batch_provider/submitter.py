"""
Builds and submits the Batch task for a pod.
"""

import logging
import shlex

from azure.batch.models import (
    AutoUserScope,
    AutoUserSpecification,
    ElevationLevel,
    TaskAddParameter,
    UserIdentity,
)
from kubernetes.client import V1Pod

from .identifiers import task_id_for
from .pod_command import CommandGenerator
from .serialization import pod_environment
from .task_store import TaskStore


def build_task_spec(pod: V1Pod, command_generator: CommandGenerator) -> TaskAddParameter:
    metadata = pod.metadata
    spec = pod.spec

    pod_command = command_generator(spec.containers, metadata.name, spec.volumes)

    return TaskAddParameter(
        id=task_id_for(pod),
        display_name=metadata.uid or f"{metadata.namespace}/{metadata.name}",
        command_line=f"/bin/bash -c {shlex.quote(pod_command)}",
        # docker needs root on the node
        user_identity=UserIdentity(
            auto_user=AutoUserSpecification(
                scope=AutoUserScope.pool,
                elevation_level=ElevationLevel.admin,
            )
        ),
        environment_settings=pod_environment(pod),
    )


def submit_pod(store: TaskStore, job_id: str, pod: V1Pod, command_generator: CommandGenerator) -> TaskAddParameter:
    """Add the pod's task to the job; raises TaskExistsError if it is already there"""
    logger = logging.getLogger(__name__)

    task = build_task_spec(pod, command_generator)
    store.add_task(job_id, task)
    logger.info(f"📄 Created batch task {task.id} for pod {pod.metadata.namespace}/{pod.metadata.name}")
    return task
