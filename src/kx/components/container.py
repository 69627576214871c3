"""
Expand shorthand container descriptions into canonical Kubernetes containers.

The canonical form is a plain mapping using the Kubernetes wire names (`volumeMounts`,
`containerPort`, `valueFrom`, ...) so that it can be handed directly to the
pulumi_kubernetes resources.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from pulumi import Output

from kx.lib.k8s_types import (
    Container,
    EnvVarList,
    EnvVarMap,
    MountDescriptor,
    PortList,
    PortMap,
)
from kx.lib.naming import infer_container_name

ContainerInput = Container | Mapping[str, Any]


def _resolve_env(env: EnvVarList | EnvVarMap) -> list[dict[str, Any]]:
    if isinstance(env, EnvVarList):
        return env.items
    if isinstance(env, EnvVarMap):
        env_vars = []
        for name, value in env.items.items():
            if isinstance(value, str | Output):
                env_vars.append({"name": name, "value": value})
            else:
                env_vars.append({"name": name, "valueFrom": value})
        return env_vars
    msg = f"Unsupported environment variable collection: {type(env).__name__}"
    raise TypeError(msg)


def _resolve_ports(ports: PortList | PortMap) -> list[dict[str, Any]]:
    if isinstance(ports, PortList):
        return ports.items
    if isinstance(ports, PortMap):
        return [
            {"name": name, "containerPort": port} for name, port in ports.items.items()
        ]
    msg = f"Unsupported port collection: {type(ports).__name__}"
    raise TypeError(msg)


def _resolve_volume_mounts(
    volume_mounts: list[MountDescriptor | dict[str, Any]],
) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    mounts: list[dict[str, Any]] = []
    volumes: list[dict[str, Any]] = []
    for mount in volume_mounts:
        if isinstance(mount, MountDescriptor):
            volume_mount = {"name": mount.volume["name"], "mountPath": mount.dest_path}
            if mount.src_path is not None:
                volume_mount["subPath"] = mount.src_path
            mounts.append(volume_mount)
            volumes.append(dict(mount.volume))
        else:
            mounts.append(mount)
    return mounts, volumes


def normalize_container(
    container: ContainerInput,
) -> tuple[dict[str, Any], list[dict[str, Any]]]:
    """Expand a shorthand container into its canonical form.

    Neither the input nor anything it references is modified. Volumes referenced by
    `MountDescriptor` mounts are not part of a container, so they are returned
    separately for the caller to place in the pod's volume list.

    :param container: The container to expand, either a `Container` model or a mapping
        that validates as one.
    :type container: Container | Mapping[str, Any]

    :raises InvalidImageReferenceError: If the container has no name and none can be
        derived from its image.

    :returns: The canonical container and the volumes discovered in its mounts.

    :rtype: tuple[dict[str, Any], list[dict[str, Any]]]
    """
    if not isinstance(container, Container):
        container = Container.model_validate(dict(container))

    canonical: dict[str, Any] = dict(container.model_extra or {})
    canonical["name"] = container.name or infer_container_name(container.image)
    if container.image is not None:
        canonical["image"] = container.image
    if container.env is not None:
        canonical["env"] = _resolve_env(container.env)
    if container.ports is not None:
        canonical["ports"] = _resolve_ports(container.ports)

    volumes: list[dict[str, Any]] = []
    if container.volume_mounts is not None:
        canonical["volumeMounts"], volumes = _resolve_volume_mounts(
            container.volume_mounts
        )
    return canonical, volumes


def normalize_containers(
    containers: Iterable[ContainerInput] | None,
) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    """Normalize every container of a list, collecting their discovered volumes."""
    normalized = []
    volumes = []
    for container in containers or []:
        canonical, container_volumes = normalize_container(container)
        normalized.append(canonical)
        volumes.extend(container_volumes)
    return normalized, volumes
