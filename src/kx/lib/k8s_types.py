"""
Shorthand input types for describing containers and pods.

Collections that may be given in more than one form are modelled as explicit variants
(`EnvVarList` / `EnvVarMap`, `PortList` / `PortMap`, `MountDescriptor` / canonical
mount mapping). Plain lists and dicts supplied by callers are wrapped into the matching
variant when a `Container` is validated, so downstream code dispatches on the type
rather than on the shape of the data.
"""

from collections.abc import Mapping
from typing import Any

from pulumi import Output
from pydantic import BaseModel, ConfigDict, Field, field_validator


class EnvVarList(BaseModel):
    """Ordered environment variables, already in `{name, value|valueFrom}` form."""

    items: list[dict[str, Any]]

    model_config = ConfigDict(arbitrary_types_allowed=True)


class EnvVarMap(BaseModel):
    """Environment variables keyed by name.

    A string value is a literal, any other value is an EnvVarSource.
    """

    items: dict[str, Any]

    model_config = ConfigDict(arbitrary_types_allowed=True)


class PortList(BaseModel):
    """Ordered container ports, already in `{name, containerPort}` form."""

    items: list[dict[str, Any]]

    model_config = ConfigDict(arbitrary_types_allowed=True)


class PortMap(BaseModel):
    """Container port numbers keyed by port name."""

    items: dict[str, Any]

    model_config = ConfigDict(arbitrary_types_allowed=True)


class MountDescriptor(BaseModel):
    """A volume together with where it should be mounted in the container."""

    volume: dict[str, Any]
    dest_path: str | Output[str] = Field(alias="destPath")
    src_path: str | Output[str] | None = Field(default=None, alias="srcPath")

    model_config = ConfigDict(arbitrary_types_allowed=True, populate_by_name=True)

    @field_validator("volume")
    @classmethod
    def check_volume_name(cls, volume: dict[str, Any]) -> dict[str, Any]:
        if volume.get("name") is None:
            msg = "A mounted volume must have a name"
            raise ValueError(msg)
        return volume


VolumeMountEntry = MountDescriptor | dict[str, Any]


class Container(BaseModel):
    """Author-facing description of a single container.

    Fields that are not modelled here (resources, probes, command, args,
    securityContext, ...) are kept as-is under the key they were given with.
    """

    name: str | Output[str] | None = None
    image: str | Output[str] | None = None
    env: EnvVarList | EnvVarMap | None = None
    ports: PortList | PortMap | None = None
    volume_mounts: list[VolumeMountEntry] | None = Field(
        default=None, alias="volumeMounts"
    )

    model_config = ConfigDict(
        arbitrary_types_allowed=True, extra="allow", populate_by_name=True
    )

    @field_validator("env", mode="before")
    @classmethod
    def wrap_env(cls, env: Any) -> Any:
        if isinstance(env, EnvVarList | EnvVarMap) or env is None:
            return env
        if isinstance(env, Mapping):
            return EnvVarMap(items=dict(env))
        return EnvVarList(items=list(env))

    @field_validator("ports", mode="before")
    @classmethod
    def wrap_ports(cls, ports: Any) -> Any:
        if isinstance(ports, PortList | PortMap) or ports is None:
            return ports
        if isinstance(ports, Mapping):
            return PortMap(items=dict(ports))
        return PortList(items=list(ports))

    @field_validator("volume_mounts", mode="before")
    @classmethod
    def wrap_volume_mounts(cls, volume_mounts: Any) -> Any:
        if volume_mounts is None:
            return None
        wrapped = []
        for mount in volume_mounts:
            if isinstance(mount, Mapping) and "volume" in mount:
                wrapped.append(MountDescriptor.model_validate(dict(mount)))
            else:
                wrapped.append(mount)
        return wrapped


class PodSpec(BaseModel):
    """A PodSpec whose containers may be given in shorthand form.

    Any PodSpec field other than the ones modelled here is passed through.
    """

    containers: list[Container]
    init_containers: list[Container] | None = Field(
        default=None, alias="initContainers"
    )
    volumes: list[dict[str, Any]] | None = None

    model_config = ConfigDict(
        arbitrary_types_allowed=True, extra="allow", populate_by_name=True
    )
