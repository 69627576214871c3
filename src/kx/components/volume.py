"""
Helpers for attaching volumes and environment variables to containers.

Every helper leaves its arguments untouched and returns a new list, so the caller
decides where the result is stored.
"""

from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import Any

from kx.lib.constants import PODINFO_MOUNT_PATH, PODINFO_VOLUME_NAME


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({key: _freeze(item) for key, item in value.items()})
    if isinstance(value, list | tuple):
        return tuple(_freeze(item) for item in value)
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {key: _thaw(item) for key, item in value.items()}
    if isinstance(value, tuple):
        return [_thaw(item) for item in value]
    return value


def _field_ref_env_var(name: str, field_path: str) -> Mapping[str, Any]:
    return _freeze({"name": name, "valueFrom": {"fieldRef": {"fieldPath": field_path}}})


def _field_ref_item(field_path: str) -> dict[str, Any]:
    return {"path": field_path, "fieldRef": {"fieldPath": field_path}}


# Pod fields exposed to every container through the Downward API. Read-only, use
# `downward_api_env_vars()` for a copy that can be placed in a container.
DOWNWARD_API_ENV_VARS: tuple[Mapping[str, Any], ...] = (
    _field_ref_env_var("SPEC_NODE_NAME", "spec.nodeName"),
    _field_ref_env_var("SPEC_SERVICE_ACCOUNT_NAME", "spec.serviceAccountName"),
    _field_ref_env_var("STATUS_HOST_IP", "status.hostIP"),
    _field_ref_env_var("STATUS_POD_IP", "status.podIP"),
    _field_ref_env_var("METADATA_NAME", "metadata.name"),
    _field_ref_env_var("METADATA_NAMESPACE", "metadata.namespace"),
    # Aliases commonly expected by k8s apps
    _field_ref_env_var("POD_NAME", "metadata.name"),
    _field_ref_env_var("POD_NAMESPACE", "metadata.namespace"),
    _field_ref_env_var("METADATA_UID", "metadata.uid"),
)

# Read-only, use `downward_api_volume()` for a copy that can be placed in a pod.
DOWNWARD_API_VOLUME: Mapping[str, Any] = _freeze(
    {
        "name": PODINFO_VOLUME_NAME,
        "downwardAPI": {
            "items": [
                _field_ref_item("metadata.name"),
                _field_ref_item("metadata.namespace"),
                _field_ref_item("metadata.uid"),
                _field_ref_item("metadata.labels"),
                _field_ref_item("metadata.annotations"),
            ],
        },
    }
)


def downward_api_env_vars() -> list[dict[str, Any]]:
    """Return a fresh, mutable copy of the Downward API environment variables."""
    return _thaw(DOWNWARD_API_ENV_VARS)


def downward_api_volume() -> dict[str, Any]:
    """Return a fresh, mutable copy of the Downward API `podinfo` volume."""
    return _thaw(DOWNWARD_API_VOLUME)


def _extend_field(
    containers: Iterable[Mapping[str, Any]] | None,
    field: str,
    entries: list[Any],
) -> list[dict[str, Any]]:
    if containers is None:
        return []
    return [
        {**container, field: [*(container.get(field) or []), *entries]}
        for container in containers
    ]


def add_volume_mount(
    name: Any,
    mount_path: Any,
    containers: Iterable[Mapping[str, Any]] | None,
) -> list[dict[str, Any]]:
    """Attach the named volume at `mount_path` in each of the containers.

    Mounts are not de-duplicated; adding the same mount twice yields two entries.
    """
    return _extend_field(
        containers, "volumeMounts", [{"name": name, "mountPath": mount_path}]
    )


def add_volume(
    volume: Mapping[str, Any],
    volumes: Iterable[Mapping[str, Any]] | None,
) -> list[dict[str, Any]]:
    """Return the volumes with `volume` appended. No de-duplication is done."""
    return [*(volumes or []), volume]


def add_env_vars_from_config_map(
    config_map_name: Any,
    containers: Iterable[Mapping[str, Any]] | None,
) -> list[dict[str, Any]]:
    """Expose every key of a ConfigMap as environment variables in the containers."""
    return _extend_field(
        containers, "envFrom", [{"configMapRef": {"name": config_map_name}}]
    )


def add_env_vars_from_secret(
    secret_name: Any,
    containers: Iterable[Mapping[str, Any]] | None,
) -> list[dict[str, Any]]:
    """Expose every key of a Secret as environment variables in the containers."""
    return _extend_field(containers, "envFrom", [{"secretRef": {"name": secret_name}}])


def add_env_var(
    env_var: Mapping[str, Any],
    containers: Iterable[Mapping[str, Any]] | None,
) -> list[dict[str, Any]]:
    """Add an environment variable into *all* the containers."""
    return _extend_field(containers, "env", [env_var])


def add_env_vars(
    env_vars: Iterable[Mapping[str, Any]],
    containers: Iterable[Mapping[str, Any]] | None,
) -> list[dict[str, Any]]:
    """Add each of the environment variables into *all* the containers."""
    return _extend_field(containers, "env", list(env_vars))


def add_downward_api(
    containers: Iterable[Mapping[str, Any]] | None,
) -> list[dict[str, Any]]:
    """Add the Downward API env vars and `podinfo` mount to the containers.

    Only the mounts are added, the `podinfo` volume itself has to be placed in the
    pod's volumes by the caller.
    """
    containers = [
        {**container, "env": [*(container.get("env") or []), *downward_api_env_vars()]}
        for container in containers or []
    ]
    return add_volume_mount(PODINFO_VOLUME_NAME, PODINFO_MOUNT_PATH, containers)
