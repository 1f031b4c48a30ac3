"""
Tests for environment-based configuration
"""

import pytest

from batch_provider.config import BatchConfig
from batch_provider.errors import ConfigurationError

BASE_ENV = {
    "AZURE_BATCH_ACCOUNT_NAME": "mybatch",
    "AZURE_BATCH_ACCOUNT_LOCATION": "northcentralus",
    "AZURE_BATCH_POOLID": "pool-1",
    "AZURE_BATCH_JOBID": "job-1",
}


def test_from_env_defaults():
    config = BatchConfig.from_env(BASE_ENV)

    assert config.account_url == "https://mybatch.northcentralus.batch.azure.com"
    assert config.pool_id == "pool-1"
    assert config.job_id == "job-1"
    assert config.account_key is None
    assert config.pool_node_count == 1
    assert config.request_timeout is None
    assert config.node_cpu == "20"
    assert config.node_memory == "100Gi"
    assert config.node_pods == "20"


def test_from_env_overrides():
    env = dict(
        BASE_ENV,
        AZURE_BATCH_URL="https://custom.example.com/",
        AZURE_BATCH_ACCOUNT_KEY="secret",
        AZURE_BATCH_POOL_NODE_COUNT="4",
        AZURE_BATCH_REQUEST_TIMEOUT="20",
        AZURE_BATCH_LIST_PAGE_SIZE="100",
        VK_NODE_NAME="batch-node",
        VK_DAEMON_ENDPOINT_PORT="10255",
    )

    config = BatchConfig.from_env(env)

    assert config.account_url == "https://custom.example.com"
    assert config.account_key == "secret"
    assert config.pool_node_count == 4
    assert config.request_timeout == 20
    assert config.list_page_size == 100
    assert config.node_name == "batch-node"
    assert config.daemon_endpoint_port == 10255


def test_batch_url_replaces_location():
    env = {k: v for k, v in BASE_ENV.items() if k != "AZURE_BATCH_ACCOUNT_LOCATION"}
    env["AZURE_BATCH_URL"] = "https://custom.example.com"
    assert BatchConfig.from_env(env).account_url == "https://custom.example.com"


def test_missing_required_values_are_named():
    with pytest.raises(ConfigurationError) as exc_info:
        BatchConfig.from_env({"AZURE_BATCH_ACCOUNT_NAME": "mybatch"})

    message = str(exc_info.value)
    for key in ("AZURE_BATCH_POOLID", "AZURE_BATCH_JOBID", "AZURE_BATCH_ACCOUNT_LOCATION"):
        assert key in message
    assert "AZURE_BATCH_ACCOUNT_NAME" not in message


def test_invalid_integer():
    with pytest.raises(ConfigurationError, match="AZURE_BATCH_POOL_NODE_COUNT"):
        BatchConfig.from_env(dict(BASE_ENV, AZURE_BATCH_POOL_NODE_COUNT="many"))
