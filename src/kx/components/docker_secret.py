"""
Build `kubernetes.io/dockerconfigjson` Secrets used to pull private images.
"""

import base64
from typing import Any

import pulumi
import pulumi_kubernetes as kubernetes
from pulumi import Output, ResourceOptions
from pydantic import BaseModel, ConfigDict

from kx.lib.constants import (
    DEFAULT_NAMESPACE,
    DOCKER_CONFIG_JSON_KEY,
    DOCKER_CONFIG_JSON_SECRET_TYPE,
)
from kx.lib.errors import MissingRequiredFieldError


def _b64encode(value: str) -> str:
    return base64.b64encode(value.encode("utf-8")).decode("ascii")


def make_docker_secret_manifest(
    docker_config_json: str | Output[str],
    namespace: str | Output[str] | None = None,
    labels: dict[str, Any] | Output[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """Create the manifest of a dockerconfigjson Secret.

    :param docker_config_json: The contents of a docker `config.json`, not yet base64
        encoded.
    :type docker_config_json: str | Output[str]

    :param namespace: Namespace of the Secret, `default` if unset.
    :type namespace: str | Output[str] | None

    :param labels: Labels to set on the Secret.
    :type labels: dict[str, Any] | None

    :returns: The Secret manifest.

    :rtype: dict[str, Any]
    """
    if isinstance(docker_config_json, Output):
        encoded: str | Output[str] = docker_config_json.apply(_b64encode)
    else:
        encoded = _b64encode(docker_config_json)
    return {
        "type": DOCKER_CONFIG_JSON_SECRET_TYPE,
        "metadata": {
            "labels": labels if labels is not None else {},
            "namespace": namespace if namespace is not None else DEFAULT_NAMESPACE,
        },
        "data": {DOCKER_CONFIG_JSON_KEY: encoded},
    }


class DockerSecretConfig(BaseModel):
    docker_config_json: str | Output[str] | None = None
    namespace: str | Output[str] | None = None
    labels: dict[str, Any] | Output[dict[str, Any]] | None = None

    model_config = ConfigDict(arbitrary_types_allowed=True)


class DockerSecretBuilder:
    """A dockerconfigjson Secret waiting to be created with a given provider."""

    def __init__(
        self,
        name: str,
        provider: kubernetes.Provider,
        config: DockerSecretConfig,
    ):
        if config.docker_config_json is None:
            raise MissingRequiredFieldError("docker_config_json", "DockerSecretBuilder")
        if provider is None:
            raise MissingRequiredFieldError("provider", "DockerSecretBuilder")

        self.name = name
        self.provider = provider
        self.manifest = make_docker_secret_manifest(
            config.docker_config_json,
            namespace=config.namespace,
            labels=config.labels,
        )

    def to_secret(self) -> kubernetes.core.v1.Secret:
        """Create a new Secret from the DockerSecretBuilder."""
        pulumi.log.debug(f"creating docker registry secret '{self.name}'")
        return kubernetes.core.v1.Secret(
            self.name,
            type=self.manifest["type"],
            metadata=self.manifest["metadata"],
            data=self.manifest["data"],
            opts=ResourceOptions(provider=self.provider),
        )
