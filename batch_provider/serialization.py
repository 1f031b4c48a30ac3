"""
Pod payload embedded in Batch task environment settings.

The full pod (minus status) is stored as JSON under ``POD_PAYLOAD_KEY`` so
it can be reconstructed from the task alone; the remote task store is the
only record of the pod. ``POD_PAYLOAD_VERSION_KEY`` carries the payload
schema version. Tasks written before versioning have no version entry and
are read as version "1".
"""

import json
from typing import Any, Dict, List, Optional, Tuple

from azure.batch.models import CloudTask, EnvironmentSetting
from kubernetes.client import ApiClient, V1Pod
from kubernetes.client.rest import ApiException

from .errors import PodTranslationError

POD_PAYLOAD_KEY = "virtualkubelet_pod"
POD_PAYLOAD_VERSION_KEY = "virtualkubelet_pod_version"
POD_PAYLOAD_VERSION = "1"
SUPPORTED_PAYLOAD_VERSIONS = (POD_PAYLOAD_VERSION,)

_api_client = None


def _get_api_client() -> ApiClient:
    global _api_client
    if _api_client is None:
        _api_client = ApiClient()
    return _api_client


class _JsonResponse:
    """Minimal response object accepted by ``ApiClient.deserialize(response, response_type)``.

    Later kubernetes releases take the response text instead, so setup.py
    bounds the client version.
    """

    def __init__(self, data: str):
        self.data = data


def serialize_pod(pod: V1Pod) -> str:
    data: Dict[str, Any] = _get_api_client().sanitize_for_serialization(pod)
    data.pop("status", None)
    return json.dumps(data, sort_keys=True)


def deserialize_pod(payload: str, task_id: Optional[str] = None) -> V1Pod:
    try:
        data = json.loads(payload)
    except (TypeError, ValueError) as e:
        raise PodTranslationError(task_id, f"payload is not valid JSON: {e}")

    if not isinstance(data, dict):
        raise PodTranslationError(task_id, "payload is not a JSON object")

    metadata = data.get("metadata") or {}
    if not isinstance(metadata, dict):
        raise PodTranslationError(task_id, "payload metadata is not an object")
    if not metadata.get("name") or not metadata.get("namespace"):
        raise PodTranslationError(task_id, "payload has no metadata.name/metadata.namespace")

    try:
        pod = _get_api_client().deserialize(_JsonResponse(json.dumps(data)), "V1Pod")
    except (ApiException, AttributeError, TypeError, ValueError) as e:
        raise PodTranslationError(task_id, f"payload is not a valid pod: {e}")

    return pod


def pod_environment(pod: V1Pod) -> List[EnvironmentSetting]:
    return [
        EnvironmentSetting(name=POD_PAYLOAD_KEY, value=serialize_pod(pod)),
        EnvironmentSetting(name=POD_PAYLOAD_VERSION_KEY, value=POD_PAYLOAD_VERSION),
    ]


def _environment_value(task: CloudTask, key: str) -> Optional[str]:
    for setting in task.environment_settings or []:
        if setting.name == key:
            return setting.value
    return None


def pod_from_task(task: CloudTask) -> V1Pod:
    """Rebuild the pod embedded in a task.

    Raises PodTranslationError when the task was not created by this
    provider or its payload is corrupt; never returns an empty pod.
    """
    payload = _environment_value(task, POD_PAYLOAD_KEY)
    if payload is None:
        raise PodTranslationError(task.id, f"environment setting {POD_PAYLOAD_KEY} is missing")

    version = _environment_value(task, POD_PAYLOAD_VERSION_KEY) or POD_PAYLOAD_VERSION
    if version not in SUPPORTED_PAYLOAD_VERSIONS:
        raise PodTranslationError(task.id, f"unsupported payload version {version}")

    return deserialize_pod(payload, task_id=task.id)


def pod_key_from_task(task: CloudTask) -> Tuple[str, str]:
    pod = pod_from_task(task)
    return pod.metadata.namespace, pod.metadata.name
