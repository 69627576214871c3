"""
Kubernetes resources that know how to be mounted into a pod as a volume.
"""

from typing import TYPE_CHECKING, Any

import pulumi_kubernetes as kubernetes
from pulumi import Output

from kx.lib.k8s_types import MountDescriptor

if TYPE_CHECKING:
    from kx.components.partial_pod_spec import Mounts, PartialPodSpec


class Mountable:
    """Mixin for resources that can provide the source of a pod volume."""

    def volume_source(self) -> dict[str, Any]:
        """Return the volume source, i.e. a Volume without its name."""
        raise NotImplementedError

    def mount(
        self, partial_pod_spec: "PartialPodSpec", mounts: "Mounts"
    ) -> "PartialPodSpec":
        """Mount this resource onto the given containers of the PartialPodSpec."""
        return partial_pod_spec.add_mount(self, mounts)

    def mount_descriptor(
        self,
        dest_path: str | Output[str],
        src_path: str | Output[str] | None = None,
    ) -> MountDescriptor:
        """Describe a mount of this resource for use in a shorthand Container."""
        return MountDescriptor(
            volume={"name": self.metadata.name, **self.volume_source()},  # type: ignore[attr-defined]
            dest_path=dest_path,
            src_path=src_path,
        )


class ConfigMap(kubernetes.core.v1.ConfigMap, Mountable):
    def volume_source(self) -> dict[str, Any]:
        return {"configMap": {"name": self.metadata.name}}

    def as_env_value(self, key: str | Output[str]) -> dict[str, Any]:
        """Reference one key of this ConfigMap as the source of an env var."""
        return {"configMapKeyRef": {"name": self.metadata.name, "key": key}}


class Secret(kubernetes.core.v1.Secret, Mountable):
    def volume_source(self) -> dict[str, Any]:
        return {"secret": {"secretName": self.metadata.name}}

    def as_env_value(self, key: str | Output[str]) -> dict[str, Any]:
        """Reference one key of this Secret as the source of an env var."""
        return {"secretKeyRef": {"name": self.metadata.name, "key": key}}


class PersistentVolumeClaim(kubernetes.core.v1.PersistentVolumeClaim, Mountable):
    def volume_source(self) -> dict[str, Any]:
        return {"persistentVolumeClaim": {"claimName": self.metadata.name}}
