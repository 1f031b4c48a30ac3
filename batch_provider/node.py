"""
Static description of the virtual node backed by the Batch pool.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional

from kubernetes.client import (
    V1DaemonEndpoint,
    V1NodeAddress,
    V1NodeCondition,
    V1NodeDaemonEndpoints,
)

from .config import BatchConfig

# (type, status, reason, message)
_NODE_CONDITIONS = [
    ("Ready", "True", "KubeletReady", "kubelet is ready."),
    ("OutOfDisk", "False", "KubeletHasSufficientDisk", "kubelet has sufficient disk space available"),
    ("MemoryPressure", "False", "KubeletHasSufficientMemory", "kubelet has sufficient memory available"),
    ("DiskPressure", "False", "KubeletHasNoDiskPressure", "kubelet has no disk pressure"),
    ("NetworkUnavailable", "False", "RouteCreated", "RouteController created a route"),
]


class VirtualNode:
    def __init__(self, config: BatchConfig):
        self.config = config

    @property
    def name(self) -> str:
        return self.config.node_name

    @property
    def operating_system(self) -> str:
        return self.config.operating_system

    def capacity(self) -> Dict[str, str]:
        return {
            "cpu": self.config.node_cpu,
            "memory": self.config.node_memory,
            "pods": self.config.node_pods,
        }

    def node_conditions(self, now: Optional[datetime] = None) -> List[V1NodeCondition]:
        now = now or datetime.now(timezone.utc)
        return [
            V1NodeCondition(
                type=condition_type,
                status=status,
                reason=reason,
                message=message,
                last_heartbeat_time=now,
                last_transition_time=now,
            )
            for condition_type, status, reason, message in _NODE_CONDITIONS
        ]

    def node_addresses(self) -> List[V1NodeAddress]:
        return [V1NodeAddress(type="InternalIP", address=self.config.internal_ip)]

    def node_daemon_endpoints(self) -> V1NodeDaemonEndpoints:
        return V1NodeDaemonEndpoints(
            kubelet_endpoint=V1DaemonEndpoint(port=self.config.daemon_endpoint_port)
        )
