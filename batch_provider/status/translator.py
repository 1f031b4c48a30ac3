"""
Azure Batch task state -> Kubernetes pod status

A Batch task has a single state machine (active, preparing, running,
completed) and a single exit code. Pods have a phase plus one status per
container. The mapping is:

    active, preparing          -> Pending
    running                    -> Running
    completed, exit code 0     -> Succeeded
    completed, exit code != 0  -> Failed
    completed, no exit code    -> Failed  (pre-processing or upload failure)
    anything else / missing    -> Unknown

Container statuses are an approximation: all containers of a pod run in one
task, so every declared container reports the same state derived from the
task. They do not reflect individual container exits.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional, Union

from azure.batch.models import CloudTask, TaskState
from kubernetes.client import (
    V1ContainerState,
    V1ContainerStateRunning,
    V1ContainerStateTerminated,
    V1ContainerStateWaiting,
    V1ContainerStatus,
    V1Pod,
    V1PodCondition,
    V1PodStatus,
)

from ..serialization import pod_from_task

# Reported when a completed task carries no exit code
NO_EXIT_CODE = -1

WAITING_MESSAGE = "Waiting for machine in Azure Batch"


class PodPhase(str, Enum):
    PENDING = "Pending"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    UNKNOWN = "Unknown"


def normalize_task_state(state: Union[TaskState, str, None]) -> Optional[TaskState]:
    """Convert a raw task state (enum or wire string) to TaskState, None if unrecognised"""
    if state is None:
        return None
    if isinstance(state, TaskState):
        return state
    try:
        return TaskState(str(state).lower())
    except ValueError:
        return None


def _exit_code(task: CloudTask) -> Optional[int]:
    info = task.execution_info
    return info.exit_code if info is not None else None


def _start_time(task: CloudTask) -> Optional[datetime]:
    info = task.execution_info
    return info.start_time if info is not None else None


def _finish_time(task: CloudTask) -> Optional[datetime]:
    info = task.execution_info
    if info is not None and info.end_time is not None:
        return info.end_time
    return task.state_transition_time


def _failure(task: CloudTask):
    info = task.execution_info
    return info.failure_info if info is not None else None


def task_phase(task: CloudTask) -> PodPhase:
    state = normalize_task_state(task.state)

    if state in (TaskState.active, TaskState.preparing):
        return PodPhase.PENDING
    if state == TaskState.running:
        return PodPhase.RUNNING
    if state == TaskState.completed:
        if _exit_code(task) == 0:
            return PodPhase.SUCCEEDED
        return PodPhase.FAILED
    return PodPhase.UNKNOWN


def container_state(task: CloudTask) -> V1ContainerState:
    state = normalize_task_state(task.state)

    if state == TaskState.active:
        return V1ContainerState(waiting=V1ContainerStateWaiting(reason="Queued", message=WAITING_MESSAGE))
    if state == TaskState.preparing:
        return V1ContainerState(waiting=V1ContainerStateWaiting(reason="Preparing", message=WAITING_MESSAGE))
    if state == TaskState.running:
        return V1ContainerState(running=V1ContainerStateRunning(started_at=_start_time(task)))
    if state == TaskState.completed:
        exit_code = _exit_code(task)
        failure = _failure(task)
        terminated = V1ContainerStateTerminated(
            exit_code=NO_EXIT_CODE if exit_code is None else exit_code,
            started_at=_start_time(task),
            finished_at=_finish_time(task),
            reason="Completed" if exit_code == 0 else "Error",
        )
        if failure is not None:
            terminated.reason = failure.code or terminated.reason
            terminated.message = failure.message
        return V1ContainerState(terminated=terminated)

    return V1ContainerState(waiting=V1ContainerStateWaiting(reason="Unknown", message=f"Unrecognised task state {task.state}"))


def _conditions(task: CloudTask, phase: PodPhase) -> List[V1PodCondition]:
    transition = task.state_transition_time
    scheduled = phase != PodPhase.UNKNOWN and normalize_task_state(task.state) != TaskState.active
    return [
        V1PodCondition(type="PodScheduled", status="True" if scheduled else "False", last_transition_time=transition),
        V1PodCondition(type="Ready", status="True" if phase == PodPhase.RUNNING else "False", last_transition_time=transition),
    ]


def to_pod_status(task: CloudTask, pod: Optional[V1Pod] = None) -> V1PodStatus:
    """Derive a fresh PodStatus from the task's current state.

    ``pod`` supplies the declared containers; it is decoded from the task
    when not given.
    """
    if pod is None:
        pod = pod_from_task(task)

    phase = task_phase(task)
    state = container_state(task)
    retry_count = task.execution_info.retry_count if task.execution_info is not None else 0

    start_time = _start_time(task)
    if start_time is None and pod.metadata is not None:
        start_time = pod.metadata.creation_timestamp

    reason = None
    message = None
    failure = _failure(task)
    if phase == PodPhase.FAILED and failure is not None:
        reason = failure.code
        message = failure.message

    container_statuses = []
    for container in (pod.spec.containers if pod.spec is not None else None) or []:
        container_statuses.append(V1ContainerStatus(
            name=container.name,
            image=container.image or "",
            image_id="",
            ready=phase == PodPhase.RUNNING,
            started=phase == PodPhase.RUNNING,
            restart_count=retry_count or 0,
            state=state,
        ))

    return V1PodStatus(
        phase=phase.value,
        start_time=start_time,
        reason=reason,
        message=message,
        conditions=_conditions(task, phase),
        container_statuses=container_statuses,
    )
