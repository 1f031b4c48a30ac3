"""
Tests for task lookup and enumeration
"""

import pytest
from azure.batch.models import CloudTask, TaskState

from batch_provider.errors import PodTranslationError
from batch_provider.lookup import TaskLookup, pod_with_status
from batch_provider.serialization import pod_environment


def _add_pods(store, pod_factory, count):
    for i in range(count):
        pod = pod_factory(name=f"pod-{i}")
        store.put_task("vk-job", CloudTask(id=f"t{i}", state=TaskState.active, environment_settings=pod_environment(pod)))


def test_get_task_missing_is_none(store):
    assert TaskLookup(store, "vk-job").get_task("nope") is None


def test_get_task_other_errors_propagate(store):
    store.fail_on["get_task"] = ConnectionError("reset")
    with pytest.raises(ConnectionError):
        TaskLookup(store, "vk-job").get_task("t0")


@pytest.mark.parametrize("page_size", [1, 2, 3, 7, 50])
def test_list_tasks_spans_pages(store, pod_factory, page_size):
    store.page_size = page_size
    _add_pods(store, pod_factory, 7)

    tasks = TaskLookup(store, "vk-job").list_tasks()

    assert [t.id for t in tasks] == [f"t{i}" for i in range(7)]


def test_list_tasks_empty_job(store):
    assert TaskLookup(store, "vk-job").list_tasks() == []


def test_list_tasks_aborts_on_page_failure(store, pod_factory):
    _add_pods(store, pod_factory, 5)
    store.fail_on_page = 1

    with pytest.raises(ConnectionError):
        TaskLookup(store, "vk-job").list_tasks()


def test_pod_with_status(pod):
    task = CloudTask(id="t", state=TaskState.running, environment_settings=pod_environment(pod))

    restored = pod_with_status(task)

    assert restored.metadata.name == "web"
    assert restored.status.phase == "Running"


def test_pod_with_status_requires_payload():
    with pytest.raises(PodTranslationError):
        pod_with_status(CloudTask(id="t", state=TaskState.running, environment_settings=[]))
