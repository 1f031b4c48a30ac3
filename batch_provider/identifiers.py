"""
Derived task identifiers for pods.

A pod is correlated with exactly one Batch task whose id is a function of
the pod's namespace and name only. The digest is 64 lowercase hex chars,
which is both the maximum task id length and inside the allowed charset.
"""

import hashlib

from kubernetes.client import V1Pod

# Kubernetes namespaces and names never contain "/"
_SEPARATOR = "/"


def task_id_for_pod(namespace: str, name: str) -> str:
    key = f"{namespace}{_SEPARATOR}{name}".encode("utf-8")
    return hashlib.sha256(key).hexdigest()


def task_id_for(pod: V1Pod) -> str:
    return task_id_for_pod(pod.metadata.namespace, pod.metadata.name)
