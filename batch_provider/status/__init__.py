"""
Task state to pod status translation.
"""

from .translator import PodPhase, container_state, normalize_task_state, task_phase, to_pod_status

__all__ = [
    'PodPhase',
    'container_state',
    'normalize_task_state',
    'task_phase',
    'to_pod_status'
]
