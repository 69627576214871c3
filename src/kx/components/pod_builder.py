"""
PodBuilder assembles a single pod from shorthand containers and turns it into a
workload resource.

Every container and init container of the pod is normalized and decorated with the
Downward API environment variables and the `podinfo` volume mounted at
`/etc/podinfo`. The builder is then adjusted through chainable calls and finally turned
into exactly one Pod, Job, CronJob, Deployment, ReplicaSet, StatefulSet or DaemonSet.

    deployment = (
        PodBuilder("web", provider, {"containers": [{"image": "nginx"}]})
        .with_metadata({"labels": {"app": "web"}, "namespace": namespace_name})
        .add_env_vars_from_config_map(config_map_name)
        .mount_volume("/host/proc", {"name": "proc", "hostPath": {"path": "/proc"}})
        .create_deployment("web", DeploymentArgs(replicas=2))
    )
"""

from collections.abc import Mapping
from typing import Any

import pulumi
import pulumi_kubernetes as kubernetes
from pulumi import Output, ResourceOptions

from kx.components.container import ContainerInput, normalize_container
from kx.components.docker_secret import DockerSecretBuilder, DockerSecretConfig
from kx.components.volume import (
    add_downward_api,
    add_env_var,
    add_env_vars,
    add_env_vars_from_config_map,
    add_env_vars_from_secret,
    add_volume,
    add_volume_mount,
    downward_api_env_vars,
    downward_api_volume,
)
from kx.components.workloads import (
    CronJobArgs,
    DaemonSetArgs,
    DeploymentArgs,
    JobArgs,
    ReplicaSetArgs,
    ServiceArgs,
    StatefulSetArgs,
    make_cron_job_manifest,
    make_daemon_set_manifest,
    make_deployment_manifest,
    make_job_manifest,
    make_pod_manifest,
    make_replica_set_manifest,
    make_service_manifest,
    make_stateful_set_manifest,
)
from kx.lib.constants import HEADLESS_CLUSTER_IP, PODINFO_MOUNT_PATH
from kx.lib.errors import MissingRequiredFieldError, PodBuilderFinalizedError
from kx.lib.k8s_types import PodSpec


class PodBuilder:
    """A Kubernetes Pod under construction.

    :param name: Logical name of the pod. Used as the default `app` label and as the
        name of the image pull Secret.
    :type name: str

    :param provider: The Kubernetes provider every resource is created with.
    :type provider: kubernetes.Provider

    :param pod_spec: The spec of the pod, whose containers may be in shorthand form.
    :type pod_spec: PodSpec | Mapping[str, Any]

    :raises MissingRequiredFieldError: If any argument is missing or the pod has no
        containers.
    """

    def __init__(
        self,
        name: str,
        provider: kubernetes.Provider,
        pod_spec: PodSpec | Mapping[str, Any],
    ):
        if not name:
            raise MissingRequiredFieldError("name", "PodBuilder")
        if provider is None:
            raise MissingRequiredFieldError("provider", "PodBuilder")
        if pod_spec is None:
            raise MissingRequiredFieldError("pod_spec", "PodBuilder")
        if not isinstance(pod_spec, PodSpec):
            pod_spec = PodSpec.model_validate(dict(pod_spec))
        if not pod_spec.containers:
            raise MissingRequiredFieldError("containers", "PodBuilder")

        self.name = name
        self.provider = provider
        self.finalized = False

        self.pod: dict[str, Any] = {
            "metadata": {"labels": {"app": name}},
            "spec": {
                **(pod_spec.model_extra or {}),
                "initContainers": [],
                "containers": [],
                "volumes": [],
            },
        }
        for volume in pod_spec.volumes or []:
            self._add_pod_volume(volume)
        for init_container in pod_spec.init_containers or []:
            self._append_container("initContainers", init_container)
        for container in pod_spec.containers:
            self._append_container("containers", container)

        spec = self.pod["spec"]
        spec["initContainers"] = add_env_vars(
            downward_api_env_vars(), spec["initContainers"]
        )
        spec["containers"] = add_env_vars(downward_api_env_vars(), spec["containers"])
        self.mount_volume(PODINFO_MOUNT_PATH, downward_api_volume())
        pulumi.log.debug(
            f"pod builder '{name}' initialized with "
            f"{len(spec['containers'])} containers and "
            f"{len(spec['initContainers'])} init containers"
        )

    @property
    def spec(self) -> dict[str, Any]:
        return self.pod["spec"]

    @property
    def metadata(self) -> dict[str, Any]:
        return self.pod["metadata"]

    def _check_not_finalized(self):
        if self.finalized:
            msg = (
                f"PodBuilder '{self.name}' has already been used to create a workload"
                " and can no longer be changed"
            )
            raise PodBuilderFinalizedError(msg)

    def _find_volume(self, name: Any) -> dict[str, Any] | None:
        for volume in self.spec["volumes"]:
            existing = volume.get("name")
            if existing is name or (isinstance(name, str) and existing == name):
                return volume
        return None

    def _add_pod_volume(self, volume: Mapping[str, Any]):
        existing = self._find_volume(volume.get("name"))
        if existing is not None:
            if isinstance(volume.get("name"), str) and existing != dict(volume):
                pulumi.log.warn(
                    f"volume '{volume.get('name')}' is already defined in pod "
                    f"'{self.name}' with a different source, keeping the first one"
                )
            else:
                pulumi.log.debug(
                    f"volume '{volume.get('name')}' already present in pod "
                    f"'{self.name}'"
                )
            return
        self.spec["volumes"] = add_volume(dict(volume), self.spec["volumes"])

    def _append_container(self, field: str, container: ContainerInput):
        canonical, volumes = normalize_container(container)
        for volume in volumes:
            self._add_pod_volume(volume)
        self.spec[field] = [*self.spec[field], canonical]

    def _apply_to_all_containers(self, helper, *args):
        self.spec["initContainers"] = helper(*args, self.spec["initContainers"])
        self.spec["containers"] = helper(*args, self.spec["containers"])

    def with_metadata(self, metadata: Mapping[str, Any]) -> "PodBuilder":
        """Set the Pod's metadata, replacing any metadata set before."""
        self._check_not_finalized()
        self.pod["metadata"] = dict(metadata)
        return self

    def add_image_pull_secrets(
        self, docker_config_json: str | Output[str] | None = None
    ) -> "PodBuilder":
        """Add Docker registry credentials to pull private container images.

        A dockerconfigjson Secret is created next to the pod, using its current labels
        and namespace, and referenced in `imagePullSecrets`.
        """
        self._check_not_finalized()
        if docker_config_json is None:
            return self

        docker_secret = DockerSecretBuilder(
            self.name,
            self.provider,
            DockerSecretConfig(
                docker_config_json=docker_config_json,
                labels=self.metadata.get("labels"),
                namespace=self.metadata.get("namespace"),
            ),
        )
        secret = docker_secret.to_secret()
        self.spec["imagePullSecrets"] = [
            *(self.spec.get("imagePullSecrets") or []),
            {"name": secret.metadata.name},
        ]
        return self

    def add_env_vars_from_config_map(
        self, config_map_name: str | Output[str]
    ) -> "PodBuilder":
        """Add every key of a ConfigMap as env vars of all the containers."""
        self._check_not_finalized()
        self._apply_to_all_containers(add_env_vars_from_config_map, config_map_name)
        return self

    def add_env_vars_from_secret(self, secret_name: str | Output[str]) -> "PodBuilder":
        """Add every key of a Secret as env vars of all the containers."""
        self._check_not_finalized()
        self._apply_to_all_containers(add_env_vars_from_secret, secret_name)
        return self

    def add_env_var(self, env_var: Mapping[str, Any]) -> "PodBuilder":
        self._check_not_finalized()
        self._apply_to_all_containers(add_env_var, env_var)
        return self

    def mount_volume(
        self, mount_path: str | Output[str], volume: Mapping[str, Any]
    ) -> "PodBuilder":
        """Mount a volume at `mount_path` in all the containers of the Pod.

        Nothing is done if the pod has no container lists to mount into.
        """
        self._check_not_finalized()
        if self.spec.get("initContainers") is None or self.spec.get("containers") is None:
            return self

        self._apply_to_all_containers(add_volume_mount, volume["name"], mount_path)
        self._add_pod_volume(volume)
        return self

    def add_init_container(self, init_container: ContainerInput) -> "PodBuilder":
        """Add an init container to the Pod.

        Init containers run as an in-order chain and must all exit successfully before
        the Pod's containers are started.
        """
        self._check_not_finalized()
        self._append_decorated_container("initContainers", init_container)
        return self

    def add_sidecar(self, container: ContainerInput) -> "PodBuilder":
        self._check_not_finalized()
        self._append_decorated_container("containers", container)
        return self

    def _append_decorated_container(self, field: str, container: ContainerInput):
        canonical, volumes = normalize_container(container)
        for volume in volumes:
            self._add_pod_volume(volume)
        self.spec[field] = [*self.spec[field], *add_downward_api([canonical])]

    def _finalize(self, kind: str) -> ResourceOptions:
        self._check_not_finalized()
        self.finalized = True
        pulumi.log.debug(f"creating {kind} from pod builder '{self.name}'")
        return ResourceOptions(provider=self.provider)

    def create_pod(self) -> kubernetes.core.v1.Pod:
        manifest = make_pod_manifest(self.pod)
        return kubernetes.core.v1.Pod(
            self.name,
            metadata=manifest["metadata"],
            spec=manifest["spec"],
            opts=self._finalize("Pod"),
        )

    def create_job(
        self, name: str, job_args: JobArgs | None = None
    ) -> kubernetes.batch.v1.Job:
        manifest = make_job_manifest(self.pod, job_args)
        return kubernetes.batch.v1.Job(
            name,
            metadata=manifest["metadata"],
            spec=manifest["spec"],
            opts=self._finalize("Job"),
        )

    def create_cron_job(
        self, name: str, cron_job_args: CronJobArgs
    ) -> kubernetes.batch.v1.CronJob:
        manifest = make_cron_job_manifest(self.pod, cron_job_args)
        return kubernetes.batch.v1.CronJob(
            name,
            metadata=manifest["metadata"],
            spec=manifest["spec"],
            opts=self._finalize("CronJob"),
        )

    def create_deployment(
        self, name: str, deployment_args: DeploymentArgs | None = None
    ) -> kubernetes.apps.v1.Deployment:
        manifest = make_deployment_manifest(self.pod, deployment_args)
        return kubernetes.apps.v1.Deployment(
            name,
            metadata=manifest["metadata"],
            spec=manifest["spec"],
            opts=self._finalize("Deployment"),
        )

    def create_replica_set(
        self, name: str, replica_set_args: ReplicaSetArgs | None = None
    ) -> kubernetes.apps.v1.ReplicaSet:
        manifest = make_replica_set_manifest(self.pod, replica_set_args)
        return kubernetes.apps.v1.ReplicaSet(
            name,
            metadata=manifest["metadata"],
            spec=manifest["spec"],
            opts=self._finalize("ReplicaSet"),
        )

    def create_daemon_set(
        self, name: str, daemon_set_args: DaemonSetArgs | None = None
    ) -> kubernetes.apps.v1.DaemonSet:
        manifest = make_daemon_set_manifest(self.pod, daemon_set_args)
        return kubernetes.apps.v1.DaemonSet(
            name,
            metadata=manifest["metadata"],
            spec=manifest["spec"],
            opts=self._finalize("DaemonSet"),
        )

    def create_stateful_set(
        self, name: str, stateful_set_args: StatefulSetArgs | None = None
    ) -> tuple[kubernetes.apps.v1.StatefulSet, kubernetes.core.v1.Service]:
        """Run the pod as a StatefulSet behind its own headless Service.

        The Service is named `<name>-service`, exposes every named container port and
        has no cluster IP. Both resources are returned.
        """
        service_name = f"{name}-service"
        service_manifest = make_service_manifest(
            self.pod, ServiceArgs(cluster_ip=HEADLESS_CLUSTER_IP)
        )
        service_manifest["metadata"]["name"] = service_name
        manifest = make_stateful_set_manifest(self.pod, service_name, stateful_set_args)
        opts = self._finalize("StatefulSet")
        service = kubernetes.core.v1.Service(
            service_name,
            metadata=service_manifest["metadata"],
            spec=service_manifest["spec"],
            opts=opts,
        )
        stateful_set = kubernetes.apps.v1.StatefulSet(
            name,
            metadata=manifest["metadata"],
            spec=manifest["spec"],
            opts=opts,
        )
        return stateful_set, service

    def create_service(
        self, name: str, service_args: ServiceArgs | None = None
    ) -> kubernetes.core.v1.Service:
        """Create a Service in front of the pod. The builder stays usable."""
        manifest = make_service_manifest(self.pod, service_args)
        return kubernetes.core.v1.Service(
            name,
            metadata=manifest["metadata"],
            spec=manifest["spec"],
            opts=ResourceOptions(provider=self.provider),
        )
