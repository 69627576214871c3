"""
Manifests for the workload resources that wrap a pod.

Each `make_*_manifest` function takes a pod (`{"metadata": ..., "spec": ...}`) and
returns the `metadata` and `spec` of the workload resource that runs it. They do not
create any resources, see `PodBuilder` for that.
"""

from enum import Enum, unique
from typing import Any, Literal

from pulumi import Output
from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, PositiveInt

from kx.lib.constants import (
    DEFAULT_DAEMONSET_UPDATE_STRATEGY,
    DEFAULT_JOB_RESTART_POLICY,
    DEFAULT_NAMESPACE,
)
from kx.lib.errors import MissingRequiredFieldError
from kx.lib.magic_numbers import (
    DEFAULT_CRONJOB_FAILED_JOBS_HISTORY_LIMIT,
    DEFAULT_CRONJOB_SUCCESSFUL_JOBS_HISTORY_LIMIT,
    DEFAULT_DAEMONSET_MIN_READY_SECONDS,
    DEFAULT_DAEMONSET_REVISION_HISTORY_LIMIT,
    DEFAULT_JOB_ACTIVE_DEADLINE_SECONDS,
    DEFAULT_JOB_BACKOFF_LIMIT,
    DEFAULT_REPLICAS,
)


class JobArgs(BaseModel):
    # The number of retries before marking the job as failed.
    backoff_limit: NonNegativeInt = DEFAULT_JOB_BACKOFF_LIMIT
    # The max time the Job can run before being terminated.
    active_deadline_seconds: PositiveInt = DEFAULT_JOB_ACTIVE_DEADLINE_SECONDS


class CronJobArgs(BaseModel):
    # The Cron scheduling format. k8s uses the standard 5-field format.
    schedule: str
    # The number of successful finished jobs to retain.
    successful_jobs_history_limit: NonNegativeInt = (
        DEFAULT_CRONJOB_SUCCESSFUL_JOBS_HISTORY_LIMIT
    )
    # The number of failed finished jobs to retain.
    failed_jobs_history_limit: NonNegativeInt = (
        DEFAULT_CRONJOB_FAILED_JOBS_HISTORY_LIMIT
    )
    job_args: JobArgs = Field(default_factory=JobArgs)


class DeploymentArgs(BaseModel):
    # The number of desired replicas of the Pods.
    replicas: NonNegativeInt = DEFAULT_REPLICAS


class ReplicaSetArgs(BaseModel):
    # The number of desired replicas of the Pods.
    replicas: NonNegativeInt = DEFAULT_REPLICAS


class StatefulSetArgs(BaseModel):
    # The number of desired replicas of the Pods.
    replicas: NonNegativeInt = DEFAULT_REPLICAS


class DaemonSetArgs(BaseModel):
    # The strategy used to replace existing DaemonSet pods with new ones.
    update_strategy: Literal["RollingUpdate", "OnDelete"] = (
        DEFAULT_DAEMONSET_UPDATE_STRATEGY
    )
    # Seconds a new pod must be ready, without any container crashing, to be
    # considered available. 0 means as soon as it is ready.
    min_ready_seconds: NonNegativeInt = DEFAULT_DAEMONSET_MIN_READY_SECONDS
    # The number of old revisions to retain to allow rollback.
    revision_history_limit: NonNegativeInt = DEFAULT_DAEMONSET_REVISION_HISTORY_LIMIT


@unique
class ServiceType(str, Enum):
    cluster_ip = "ClusterIP"
    load_balancer = "LoadBalancer"


class ServiceArgs(BaseModel):
    type: ServiceType = ServiceType.cluster_ip
    # Service port numbers keyed by the name of the container port they target.
    ports: dict[str, int | Output[int]] = Field(default_factory=dict)
    selector: dict[str, Any] | Output[dict[str, Any]] | None = None
    # "None" makes the Service headless.
    cluster_ip: str | None = None

    model_config = ConfigDict(arbitrary_types_allowed=True)


def _check_pod(pod: dict[str, Any] | None, kind: str) -> dict[str, Any]:
    if not pod or pod.get("spec") is None:
        raise MissingRequiredFieldError("pod", kind)
    return pod


def _labels(pod: dict[str, Any]) -> Any:
    return (pod.get("metadata") or {}).get("labels")


def _workload_metadata(pod: dict[str, Any]) -> dict[str, Any]:
    metadata = pod.get("metadata") or {}
    namespace = metadata.get("namespace")
    return {
        "labels": metadata.get("labels"),
        "namespace": namespace if namespace is not None else DEFAULT_NAMESPACE,
    }


def _pod_template(pod: dict[str, Any]) -> dict[str, Any]:
    return {"metadata": pod.get("metadata") or {}, "spec": pod["spec"]}


def _job_pod_template(pod: dict[str, Any]) -> dict[str, Any]:
    template = _pod_template(pod)
    if template["spec"].get("restartPolicy") is None:
        template["spec"] = {
            **template["spec"],
            "restartPolicy": DEFAULT_JOB_RESTART_POLICY,
        }
    return template


def make_pod_manifest(pod: dict[str, Any]) -> dict[str, Any]:
    pod = _check_pod(pod, "Pod")
    return {
        "metadata": {**(pod.get("metadata") or {}), **_workload_metadata(pod)},
        "spec": pod["spec"],
    }


def _job_spec(pod: dict[str, Any], job_args: JobArgs) -> dict[str, Any]:
    return {
        "backoffLimit": job_args.backoff_limit,
        "activeDeadlineSeconds": job_args.active_deadline_seconds,
        "template": _job_pod_template(pod),
    }


def make_job_manifest(
    pod: dict[str, Any], job_args: JobArgs | None = None
) -> dict[str, Any]:
    pod = _check_pod(pod, "Job")
    return {
        "metadata": _workload_metadata(pod),
        "spec": _job_spec(pod, job_args or JobArgs()),
    }


def make_cron_job_manifest(
    pod: dict[str, Any], cron_job_args: CronJobArgs
) -> dict[str, Any]:
    pod = _check_pod(pod, "CronJob")
    if cron_job_args is None:
        raise MissingRequiredFieldError("cron_job_args", "CronJob")
    return {
        "metadata": _workload_metadata(pod),
        "spec": {
            "schedule": cron_job_args.schedule,
            "successfulJobsHistoryLimit": cron_job_args.successful_jobs_history_limit,
            "failedJobsHistoryLimit": cron_job_args.failed_jobs_history_limit,
            "jobTemplate": {"spec": _job_spec(pod, cron_job_args.job_args)},
        },
    }


def make_deployment_manifest(
    pod: dict[str, Any], deployment_args: DeploymentArgs | None = None
) -> dict[str, Any]:
    pod = _check_pod(pod, "Deployment")
    deployment_args = deployment_args or DeploymentArgs()
    return {
        "metadata": _workload_metadata(pod),
        "spec": {
            "replicas": deployment_args.replicas,
            "selector": {"matchLabels": _labels(pod)},
            "template": _pod_template(pod),
        },
    }


def make_replica_set_manifest(
    pod: dict[str, Any], replica_set_args: ReplicaSetArgs | None = None
) -> dict[str, Any]:
    pod = _check_pod(pod, "ReplicaSet")
    replica_set_args = replica_set_args or ReplicaSetArgs()
    return {
        "metadata": _workload_metadata(pod),
        "spec": {
            "replicas": replica_set_args.replicas,
            "selector": {"matchLabels": _labels(pod)},
            "template": _pod_template(pod),
        },
    }


def make_daemon_set_manifest(
    pod: dict[str, Any], daemon_set_args: DaemonSetArgs | None = None
) -> dict[str, Any]:
    pod = _check_pod(pod, "DaemonSet")
    daemon_set_args = daemon_set_args or DaemonSetArgs()
    return {
        "metadata": _workload_metadata(pod),
        "spec": {
            "minReadySeconds": daemon_set_args.min_ready_seconds,
            "revisionHistoryLimit": daemon_set_args.revision_history_limit,
            "updateStrategy": {"type": daemon_set_args.update_strategy},
            "selector": {"matchLabels": _labels(pod)},
            "template": _pod_template(pod),
        },
    }


def make_stateful_set_manifest(
    pod: dict[str, Any],
    service_name: str,
    stateful_set_args: StatefulSetArgs | None = None,
) -> dict[str, Any]:
    """Run the pod as a StatefulSet governed by the Service called `service_name`.

    :param pod: The pod the StatefulSet replicates.
    :param service_name: Name of the headless Service that gives the pods their
        network identity.
    :param stateful_set_args: Replica count, one replica when omitted.
    """
    pod = _check_pod(pod, "StatefulSet")
    if not service_name:
        raise MissingRequiredFieldError("service_name", "StatefulSet")
    stateful_set_args = stateful_set_args or StatefulSetArgs()
    return {
        "metadata": _workload_metadata(pod),
        "spec": {
            "replicas": stateful_set_args.replicas,
            "serviceName": service_name,
            "selector": {"matchLabels": _labels(pod)},
            "template": _pod_template(pod),
        },
    }


def container_ports(pod: dict[str, Any]) -> dict[str, Any]:
    """Named container ports of every container in the pod, in container order."""
    ports: dict[str, Any] = {}
    for container in pod["spec"].get("containers") or []:
        for port in container.get("ports") or []:
            if port.get("name"):
                ports[port["name"]] = port["containerPort"]
    return ports


def make_service_manifest(
    pod: dict[str, Any], service_args: ServiceArgs | None = None
) -> dict[str, Any]:
    """Expose the pod's named container ports through a Service.

    Each service port targets the container port of the same name. Without explicit
    `ports` every named container port is exposed on its own number.
    """
    pod = _check_pod(pod, "Service")
    service_args = service_args or ServiceArgs()
    ports = service_args.ports or container_ports(pod)
    spec = {
        "type": service_args.type.value,
        "ports": [
            {"name": name, "port": port, "targetPort": name}
            for name, port in ports.items()
        ],
        "selector": (
            service_args.selector
            if service_args.selector is not None
            else _labels(pod)
        ),
    }
    if service_args.cluster_ip is not None:
        spec["clusterIP"] = service_args.cluster_ip
    return {"metadata": _workload_metadata(pod), "spec": spec}
