"""
Resources of the k8s-demo application: a web container behind a Service and an
Ingress, running in its own namespace.
"""

from typing import Any

import pulumi_kubernetes as kubernetes
from pulumi import Output, ResourceOptions
from pydantic import BaseModel, ConfigDict, Field, PositiveInt

from kx.components.mountable import ConfigMap
from kx.components.pod_builder import PodBuilder
from kx.components.workloads import DeploymentArgs, ServiceArgs
from kx.lib.magic_numbers import DEFAULT_APP_PORT, DEFAULT_HTTP_PORT


class K8sDemoConfig(BaseModel):
    name: str = "k8s-demo"
    namespace: str = "k8s-demo"
    hostname: str
    image: str
    ingress_class_name: str = "nginx"
    ingress_path: str = "/foobar"
    replicas: PositiveInt = 1
    env: dict[str, str] = Field(default={"MY_FOO": "bar"})
    resource_requests: dict[str, str] = Field(
        default={"cpu": "256m", "memory": "256Mi"}
    )
    resource_limits: dict[str, str] = Field(default={"cpu": "256m", "memory": "256Mi"})
    docker_config_json: str | Output[str] | None = None

    model_config = ConfigDict(arbitrary_types_allowed=True)


def create_demo_resources(
    config: K8sDemoConfig,
    provider: kubernetes.Provider,
) -> dict[str, Any]:
    resource_options = ResourceOptions(provider=provider)
    labels = {"app": config.name}

    namespace = kubernetes.core.v1.Namespace(
        config.namespace,
        opts=resource_options,
    )
    namespace_name = namespace.metadata.name

    env_config_map = ConfigMap(
        config.name,
        metadata=kubernetes.meta.v1.ObjectMetaArgs(
            labels=labels,
            namespace=namespace_name,
        ),
        data=config.env,
        opts=resource_options,
    )

    # PodBuilder mounts the downward API env vars and files in the Pod
    pod_builder = (
        PodBuilder(
            config.name,
            provider,
            {
                "containers": [
                    {
                        "name": config.name,
                        "image": config.image,
                        "ports": {"http": DEFAULT_APP_PORT},
                        "resources": {
                            "requests": config.resource_requests,
                            "limits": config.resource_limits,
                        },
                    }
                ],
            },
        )
        .with_metadata({"labels": labels, "namespace": namespace_name})
        .add_env_vars_from_config_map(env_config_map.metadata.name)
        .add_image_pull_secrets(config.docker_config_json)
    )

    service = pod_builder.create_service(
        config.name,
        ServiceArgs(ports={"http": DEFAULT_HTTP_PORT}),
    )
    deployment = pod_builder.create_deployment(
        config.name,
        DeploymentArgs(replicas=config.replicas),
    )

    ingress = kubernetes.networking.v1.Ingress(
        config.name,
        metadata=kubernetes.meta.v1.ObjectMetaArgs(
            labels=labels,
            namespace=namespace_name,
        ),
        spec=kubernetes.networking.v1.IngressSpecArgs(
            ingress_class_name=config.ingress_class_name,
            rules=[
                kubernetes.networking.v1.IngressRuleArgs(
                    host=config.hostname,
                    http=kubernetes.networking.v1.HTTPIngressRuleValueArgs(
                        paths=[
                            kubernetes.networking.v1.HTTPIngressPathArgs(
                                path=config.ingress_path,
                                path_type="Prefix",
                                backend=kubernetes.networking.v1.IngressBackendArgs(
                                    service=kubernetes.networking.v1.IngressServiceBackendArgs(
                                        name=service.metadata.name,
                                        port=kubernetes.networking.v1.ServiceBackendPortArgs(
                                            name="http",
                                        ),
                                    ),
                                ),
                            ),
                        ],
                    ),
                ),
            ],
        ),
        opts=resource_options,
    )

    return {
        "namespace": namespace,
        "config_map": env_config_map,
        "service": service,
        "deployment": deployment,
        "ingress": ingress,
    }
