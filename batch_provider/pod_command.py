"""
Default pod -> shell command generator.

Runs every container of a pod with docker on the Batch node. A "pause"
container owns the pod's network namespace so containers can reach each
other on localhost, the way they would inside a real pod. Each container's
output is followed into a file named after the container in the task
working directory.
"""

import logging
import shlex
from typing import Callable, Dict, List, Optional, Sequence

from kubernetes.client import V1Container, V1Volume

from .errors import CommandGenerationError

PAUSE_IMAGE = "mcr.microsoft.com/oss/kubernetes/pause:3.6"

# (containers, pod name, volumes) -> shell command
CommandGenerator = Callable[[Sequence[V1Container], str, Optional[Sequence[V1Volume]]], str]


def _docker_name(pod_name: str, suffix: str) -> str:
    return f"{pod_name}_{suffix}"


def _volume_sources(pod_name: str, volumes: Optional[Sequence[V1Volume]]) -> Dict[str, str]:
    """Map pod volume names to a docker volume name or host path"""
    sources: Dict[str, str] = {}
    for volume in volumes or []:
        if volume.empty_dir is not None:
            sources[volume.name] = _docker_name(pod_name, volume.name)
        elif volume.host_path is not None:
            sources[volume.name] = volume.host_path.path
        else:
            raise CommandGenerationError(
                f"Volume {volume.name} of pod {pod_name}: only emptyDir and hostPath volumes are supported"
            )
    return sources


def _run_container(pod_name: str, pause_name: str, container: V1Container, sources: Dict[str, str]) -> str:
    args: List[str] = [
        "docker", "run", "-d",
        "--name", _docker_name(pod_name, container.name),
        "--network", f"container:{pause_name}",
    ]

    for mount in container.volume_mounts or []:
        if mount.name not in sources:
            raise CommandGenerationError(
                f"Container {container.name} mounts unknown volume {mount.name}"
            )
        spec = f"{sources[mount.name]}:{mount.mount_path}"
        if mount.read_only:
            spec += ":ro"
        args.extend(["-v", spec])

    for env in container.env or []:
        if env.value_from is not None:
            raise CommandGenerationError(
                f"Container {container.name} env {env.name}: valueFrom is not supported"
            )
        args.extend(["-e", f"{env.name}={env.value or ''}"])

    if container.working_dir:
        args.extend(["-w", container.working_dir])

    command = list(container.command or [])
    if command:
        args.extend(["--entrypoint", command[0]])

    args.append(container.image)
    args.extend(command[1:])
    args.extend(container.args or [])

    return " ".join(shlex.quote(a) for a in args)


def get_bash_command(
    containers: Sequence[V1Container],
    pod_name: str,
    volumes: Optional[Sequence[V1Volume]] = None,
) -> str:
    logger = logging.getLogger(__name__)

    if not containers:
        raise CommandGenerationError(f"Pod {pod_name} declares no containers")
    for container in containers:
        if not container.image:
            raise CommandGenerationError(f"Container {container.name} of pod {pod_name} has no image")

    sources = _volume_sources(pod_name, volumes)
    pause_name = _docker_name(pod_name, "pause")
    q = shlex.quote

    steps: List[str] = []
    docker_volumes = [v.name for v in volumes or [] if v.empty_dir is not None]
    for volume_name in docker_volumes:
        steps.append(f"docker volume create {q(sources[volume_name])}")

    steps.append(f"docker run -d --name {q(pause_name)} {q(PAUSE_IMAGE)}")

    for container in containers:
        steps.append(f"docker pull {q(container.image)}")
        steps.append(_run_container(pod_name, pause_name, container, sources))
        steps.append(
            f"docker logs -f {q(_docker_name(pod_name, container.name))} > {q('./' + container.name)} 2>&1 &"
        )

    steps.append("exit_code=0")
    for container in containers:
        name = q(_docker_name(pod_name, container.name))
        steps.append(f"rc=$(docker wait {name})")
        steps.append('if [ "$exit_code" -eq 0 ] && [ "$rc" -ne 0 ]; then exit_code=$rc; fi')

    # log followers exit once their container has stopped
    steps.append("wait")
    for container in containers:
        steps.append(f"docker rm -f {q(_docker_name(pod_name, container.name))}")
    steps.append(f"docker rm -f {q(pause_name)}")
    for volume_name in docker_volumes:
        steps.append(f"docker volume rm {q(sources[volume_name])}")
    steps.append('exit "$exit_code"')

    logger.debug(f"Generated command for pod {pod_name} with {len(containers)} container(s)")
    return _join(steps)


def _join(steps: Sequence[str]) -> str:
    """Join shell statements on one line; backgrounded statements already end in '&'"""
    script = ""
    for step in steps:
        if script:
            script += " " if script.endswith("&") else "; "
        script += step
    return script
