"""
Provider configuration loaded from the environment.
"""

import os
from dataclasses import dataclass
from typing import List, Mapping, Optional

from .errors import ConfigurationError


@dataclass
class BatchConfig:
    """Azure Batch account, pool/job and virtual node settings"""
    account_name: str
    pool_id: str
    job_id: str
    account_location: Optional[str] = None
    batch_url: Optional[str] = None
    account_key: Optional[str] = None

    # Pool defaults used when the pool has to be created
    pool_vm_size: str = "standard_d2s_v3"
    pool_node_count: int = 1
    pool_ready_timeout: int = 0  # seconds, 0 = don't wait for steady state

    request_timeout: Optional[int] = None  # seconds, forwarded to the Batch service
    list_page_size: Optional[int] = None

    # Virtual node reporting
    node_name: str = "virtual-kubelet"
    operating_system: str = "Linux"
    internal_ip: str = ""
    daemon_endpoint_port: int = 10250
    node_cpu: str = "20"
    node_memory: str = "100Gi"
    node_pods: str = "20"

    @property
    def account_url(self) -> str:
        if self.batch_url:
            return self.batch_url.rstrip("/")
        return f"https://{self.account_name}.{self.account_location}.batch.azure.com"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "BatchConfig":
        env = os.environ if environ is None else environ

        missing: List[str] = []
        for key in ("AZURE_BATCH_ACCOUNT_NAME", "AZURE_BATCH_POOLID", "AZURE_BATCH_JOBID"):
            if not env.get(key):
                missing.append(key)
        if not env.get("AZURE_BATCH_URL") and not env.get("AZURE_BATCH_ACCOUNT_LOCATION"):
            missing.append("AZURE_BATCH_ACCOUNT_LOCATION")
        if missing:
            raise ConfigurationError(f"Missing required environment variables: {', '.join(missing)}")

        return cls(
            account_name=env["AZURE_BATCH_ACCOUNT_NAME"],
            pool_id=env["AZURE_BATCH_POOLID"],
            job_id=env["AZURE_BATCH_JOBID"],
            account_location=env.get("AZURE_BATCH_ACCOUNT_LOCATION") or None,
            batch_url=env.get("AZURE_BATCH_URL") or None,
            account_key=env.get("AZURE_BATCH_ACCOUNT_KEY") or None,
            pool_vm_size=env.get("AZURE_BATCH_POOL_VM_SIZE", cls.pool_vm_size),
            pool_node_count=_int_from_env(env, "AZURE_BATCH_POOL_NODE_COUNT", cls.pool_node_count),
            pool_ready_timeout=_int_from_env(env, "AZURE_BATCH_POOL_READY_TIMEOUT", cls.pool_ready_timeout),
            request_timeout=_int_from_env(env, "AZURE_BATCH_REQUEST_TIMEOUT", None),
            list_page_size=_int_from_env(env, "AZURE_BATCH_LIST_PAGE_SIZE", None),
            node_name=env.get("VK_NODE_NAME", cls.node_name),
            operating_system=env.get("VK_OPERATING_SYSTEM", cls.operating_system),
            internal_ip=env.get("VK_INTERNAL_IP", cls.internal_ip),
            daemon_endpoint_port=_int_from_env(env, "VK_DAEMON_ENDPOINT_PORT", cls.daemon_endpoint_port),
            node_cpu=env.get("VK_NODE_CPU", cls.node_cpu),
            node_memory=env.get("VK_NODE_MEMORY", cls.node_memory),
            node_pods=env.get("VK_NODE_PODS", cls.node_pods),
        )


def _int_from_env(env: Mapping[str, str], key: str, default: Optional[int]) -> Optional[int]:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{key} must be an integer, got {raw!r}")
