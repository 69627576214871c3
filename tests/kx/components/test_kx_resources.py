"""Unit tests for the Kubernetes resources created by the kx builders.

Resources are created at module level against Pulumi mocks, and their outputs are
checked with the @pulumi.runtime.test decorator.
"""

import asyncio
import base64
import json

import pulumi
import pytest

# Python 3.14+ compatibility: ensure event loop exists for set_mocks()
try:
    asyncio.get_event_loop()
except RuntimeError:
    asyncio.set_event_loop(asyncio.new_event_loop())


class KxMocks(pulumi.runtime.Mocks):
    """Echo resource inputs, naming Kubernetes objects after their resource."""

    def new_resource(self, args: pulumi.runtime.MockResourceArgs):
        outputs = args.inputs
        if args.typ.startswith("kubernetes:"):
            outputs = {
                **args.inputs,
                "metadata": {"name": args.name, **(args.inputs.get("metadata") or {})},
            }
        return [args.name + "_id", outputs]

    def call(self, args: pulumi.runtime.MockCallArgs):
        return {}


# Set mocks BEFORE importing infrastructure code
pulumi.runtime.set_mocks(KxMocks(), preview=False)

import pulumi_kubernetes as kubernetes  # noqa: E402

from kx.applications.k8s_demo.demo_resources import (  # noqa: E402
    K8sDemoConfig,
    create_demo_resources,
)
from kx.components.docker_secret import (  # noqa: E402
    DockerSecretBuilder,
    DockerSecretConfig,
)
from kx.components.mountable import ConfigMap, PersistentVolumeClaim, Secret  # noqa: E402
from kx.components.partial_pod_spec import Deployment, PartialPodSpec  # noqa: E402
from kx.components.pod_builder import PodBuilder  # noqa: E402
from kx.components.workloads import (  # noqa: E402
    CronJobArgs,
    DaemonSetArgs,
    DeploymentArgs,
    JobArgs,
    ReplicaSetArgs,
    ServiceArgs,
    StatefulSetArgs,
)
from kx.lib.errors import PodBuilderFinalizedError  # noqa: E402

DOCKER_CONFIG_JSON = json.dumps({"auths": {"registry.io": {"auth": "dXNlcjpwdw=="}}})

provider = kubernetes.Provider("test-provider")

# Deployment with private image credentials and a Service
web_builder = (
    PodBuilder(
        "web",
        provider,
        {"containers": [{"image": "registry.io/org/web:1.0", "ports": {"http": 8080}}]},
    )
    .with_metadata({"labels": {"app": "web"}, "namespace": "apps"})
    .add_image_pull_secrets(DOCKER_CONFIG_JSON)
)
web_service = web_builder.create_service("web-service", ServiceArgs(ports={"http": 80}))
web_deployment = web_builder.create_deployment(
    "web-deployment", DeploymentArgs(replicas=2)
)

migration_job = PodBuilder(
    "migrate", provider, {"containers": [{"image": "registry.io/org/web:1.0"}]}
).create_job("migrate-job", JobArgs(backoff_limit=1))

cleanup_cron_job = PodBuilder(
    "cleanup", provider, {"containers": [{"image": "busybox"}]}
).create_cron_job("cleanup-cron-job", CronJobArgs(schedule="0 3 * * *"))

node_exporter = PodBuilder(
    "node-exporter",
    provider,
    {"hostNetwork": True, "containers": [{"image": "prom/node-exporter"}]},
).create_daemon_set("node-exporter", DaemonSetArgs(update_strategy="OnDelete"))

# One shorthand container with a data volume, run with 3 replicas
web_example_deployment = (
    PodBuilder(
        "web-example",
        provider,
        {"containers": [{"name": "web", "image": "nginx", "ports": {"http": 8080}}]},
    )
    .mount_volume("/data", {"name": "data", "emptyDir": {}})
    .create_deployment("web-example", DeploymentArgs(replicas=3))
)

cache_replica_set = PodBuilder(
    "cache", provider, {"containers": [{"image": "redis:7"}]}
).create_replica_set("cache-replica-set", ReplicaSetArgs(replicas=2))

debug_pod = PodBuilder("debug", provider, {"containers": [{"image": "busybox"}]})
debug_pod_resource = debug_pod.create_pod()

registry_secret = DockerSecretBuilder(
    "registry",
    provider,
    DockerSecretConfig(docker_config_json=DOCKER_CONFIG_JSON, namespace="apps"),
).to_secret()

# Deployment merged from PartialPodSpecs with mountable resources
nginx_config = ConfigMap(
    "nginx-config",
    metadata={"namespace": "apps"},
    data={"default.conf": "server {}"},
    opts=pulumi.ResourceOptions(provider=provider),
)
tls_secret = Secret(
    "nginx-tls",
    metadata={"namespace": "apps"},
    string_data={"tls.key": "key"},
    opts=pulumi.ResourceOptions(provider=provider),
)
cache_claim = PersistentVolumeClaim(
    "nginx-cache",
    metadata={"namespace": "apps"},
    spec={"accessModes": ["ReadWriteOnce"]},
    opts=pulumi.ResourceOptions(provider=provider),
)
nginx_partial = PartialPodSpec(
    "nginx",
    {
        "container": {
            "image": "nginx:1.25",
            "volumeMounts": [tls_secret.mount_descriptor("/etc/tls")],
        }
    },
)
nginx_config.mount(nginx_partial, {"nginx": "/etc/nginx/conf.d"})
cache_claim.mount(nginx_partial, {"nginx": "/var/cache/nginx"})
exporter_partial = PartialPodSpec(
    "exporter",
    {
        "container": {
            "name": "exporter",
            "image": "nginx/nginx-prometheus-exporter",
            "env": {
                "TLS_KEY": tls_secret.as_env_value("tls.key"),
                "NGINX_CONF": nginx_config.as_env_value("default.conf"),
            },
        }
    },
)
nginx_deployment = Deployment.from_partial_pod_specs(
    "nginx",
    {"labels": {"app": "nginx"}, "namespace": "apps"},
    [nginx_partial, exporter_partial],
    opts=pulumi.ResourceOptions(provider=provider),
)

# Mount path only known once the stack runs
db_partial = PartialPodSpec("db", {"container": {"name": "db", "image": "postgres:16"}})
cache_claim.mount(db_partial, {"db": pulumi.Output.from_input("/var/lib/data")})

# StatefulSet with the headless Service that governs it
db_stateful_set, db_headless_service = PodBuilder(
    "db",
    provider,
    {
        "containers": [
            {"image": "postgres:16", "ports": {"postgres": 5432}},
            {
                "name": "metrics",
                "image": "prom/postgres-exporter",
                "ports": {"metrics": 9187},
            },
        ]
    },
).create_stateful_set("db", StatefulSetArgs(replicas=3))

demo_resources = create_demo_resources(
    K8sDemoConfig(
        hostname="demo.example.com",
        image="registry.io/org/k8s-demo:1.0",
        replicas=2,
        docker_config_json=DOCKER_CONFIG_JSON,
    ),
    provider,
)


def test_builder_is_finalized_after_creating_a_workload():
    assert web_builder.finalized
    with pytest.raises(PodBuilderFinalizedError):
        web_builder.create_job("web-job")
    with pytest.raises(PodBuilderFinalizedError):
        web_builder.add_env_var({"name": "FOO", "value": "bar"})
    with pytest.raises(PodBuilderFinalizedError):
        debug_pod.create_deployment("debug-deployment")


@pulumi.runtime.test
def test_deployment_spec():
    def check_deployment(args):
        name, metadata, spec = args
        assert name == "web-deployment"
        assert metadata.namespace == "apps"
        assert spec.replicas == 2
        assert spec.selector.match_labels == {"app": "web"}
        assert spec.template.metadata.labels == {"app": "web"}
        (container,) = spec.template.spec.containers
        assert container.name == "web"
        assert container.ports[0].container_port == 8080
        assert "POD_NAME" in [env_var.name for env_var in container.env]
        assert [mount.mount_path for mount in container.volume_mounts] == [
            "/etc/podinfo"
        ]

    return pulumi.Output.all(
        web_deployment.metadata.name,
        web_deployment.metadata,
        web_deployment.spec,
    ).apply(check_deployment)


@pulumi.runtime.test
def test_image_pull_secret_is_referenced():
    def check_pull_secrets(spec):
        assert [secret.name for secret in spec.template.spec.image_pull_secrets] == [
            "web"
        ]

    return web_deployment.spec.apply(check_pull_secrets)


@pulumi.runtime.test
def test_service_targets_named_ports():
    def check_service(spec):
        assert spec.type == "ClusterIP"
        assert spec.selector == {"app": "web"}
        (port,) = spec.ports
        assert port.name == "http"
        assert port.port == 80
        assert port.target_port == "http"

    return web_service.spec.apply(check_service)


@pulumi.runtime.test
def test_job_defaults():
    def check_job(args):
        namespace, spec = args
        assert namespace == "default"
        assert spec.backoff_limit == 1
        assert spec.active_deadline_seconds == 600
        assert spec.template.spec.restart_policy == "Never"

    return pulumi.Output.all(
        migration_job.metadata.namespace, migration_job.spec
    ).apply(check_job)


@pulumi.runtime.test
def test_cron_job_schedule():
    def check_cron_job(spec):
        assert spec.schedule == "0 3 * * *"
        assert spec.successful_jobs_history_limit == 3
        assert spec.failed_jobs_history_limit == 1
        assert spec.job_template.spec.template.spec.restart_policy == "Never"

    return cleanup_cron_job.spec.apply(check_cron_job)


@pulumi.runtime.test
def test_daemon_set_update_strategy():
    def check_daemon_set(spec):
        assert spec.update_strategy.type == "OnDelete"
        assert spec.revision_history_limit == 10
        assert spec.template.spec.host_network is True

    return node_exporter.spec.apply(check_daemon_set)


@pulumi.runtime.test
def test_pod_is_named_after_the_builder():
    def check_pod(args):
        name, labels = args
        assert name == "debug"
        assert labels == {"app": "debug"}

    return pulumi.Output.all(
        debug_pod_resource.metadata.name, debug_pod_resource.metadata.labels
    ).apply(check_pod)


@pulumi.runtime.test
def test_merged_deployment_mounts():
    def check_volumes(spec):
        pod_spec = spec.template.spec
        assert [container.name for container in pod_spec.containers] == [
            "nginx",
            "exporter",
        ]
        volumes = {volume.name: volume for volume in pod_spec.volumes}
        assert volumes["nginx-tls"].secret.secret_name == "nginx-tls"
        assert volumes["conf"].config_map.name == "nginx-config"
        assert volumes["nginx"].persistent_volume_claim.claim_name == "nginx-cache"
        nginx, exporter = pod_spec.containers
        assert [mount.mount_path for mount in nginx.volume_mounts] == [
            "/etc/tls",
            "/etc/podinfo",
            "/etc/nginx/conf.d",
            "/var/cache/nginx",
        ]
        tls_key = next(env for env in exporter.env if env.name == "TLS_KEY")
        assert tls_key.value_from.secret_key_ref.name == "nginx-tls"
        assert tls_key.value_from.secret_key_ref.key == "tls.key"

    return nginx_deployment.spec.apply(check_volumes)


@pulumi.runtime.test
def test_merged_deployment_selector():
    def check_selector(spec):
        assert spec.replicas == 1
        assert spec.selector.match_labels == {"app": "nginx"}

    return nginx_deployment.spec.apply(check_selector)


@pulumi.runtime.test
def test_demo_deployment():
    def check_deployment(args):
        spec, namespace = args
        assert spec.replicas == 2
        (container,) = spec.template.spec.containers
        assert container.name == "k8s-demo"
        assert container.resources.limits == {"cpu": "256m", "memory": "256Mi"}
        assert container.env_from[0].config_map_ref.name == "k8s-demo"
        assert namespace == "k8s-demo"

    return pulumi.Output.all(
        demo_resources["deployment"].spec,
        demo_resources["deployment"].metadata.namespace,
    ).apply(check_deployment)


@pulumi.runtime.test
def test_demo_ingress_routes_to_the_service():
    def check_ingress(spec):
        assert spec.ingress_class_name == "nginx"
        (rule,) = spec.rules
        assert rule.host == "demo.example.com"
        (path,) = rule.http.paths
        assert path.path == "/foobar"
        assert path.path_type == "Prefix"
        assert path.backend.service.name == "k8s-demo"
        assert path.backend.service.port.name == "http"

    return demo_resources["ingress"].spec.apply(check_ingress)



@pulumi.runtime.test
def test_docker_secret_data_is_base64_encoded():
    def check_secret(args):
        secret_type, namespace, data = args
        assert secret_type == "kubernetes.io/dockerconfigjson"  # noqa: S105
        assert namespace == "apps"
        decoded = base64.b64decode(data[".dockerconfigjson"]).decode("utf-8")
        assert json.loads(decoded) == json.loads(DOCKER_CONFIG_JSON)

    return pulumi.Output.all(
        registry_secret.type,
        registry_secret.metadata.namespace,
        registry_secret.data,
    ).apply(check_secret)


@pulumi.runtime.test
def test_shorthand_pod_end_to_end():
    def check_deployment(spec):
        assert spec.replicas == 3
        assert spec.selector.match_labels == {"app": "web-example"}
        pod_spec = spec.template.spec
        (container,) = pod_spec.containers
        assert container.name == "web"
        (port,) = container.ports
        assert (port.name, port.container_port) == ("http", 8080)
        mounts = [(mount.name, mount.mount_path) for mount in container.volume_mounts]
        assert mounts == [("podinfo", "/etc/podinfo"), ("data", "/data")]
        assert [volume.name for volume in pod_spec.volumes] == ["podinfo", "data"]

    return web_example_deployment.spec.apply(check_deployment)


@pulumi.runtime.test
def test_replica_set_selects_its_pods():
    def check_replica_set(spec):
        assert spec.replicas == 2
        assert spec.selector.match_labels == {"app": "cache"}
        assert spec.template.spec.containers[0].name == "redis"

    return cache_replica_set.spec.apply(check_replica_set)


@pulumi.runtime.test
def test_config_map_key_as_env_value():
    def check_env(spec):
        exporter = spec.template.spec.containers[1]
        nginx_conf = next(env for env in exporter.env if env.name == "NGINX_CONF")
        assert nginx_conf.value_from.config_map_key_ref.name == "nginx-config"
        assert nginx_conf.value_from.config_map_key_ref.key == "default.conf"

    return nginx_deployment.spec.apply(check_env)


@pulumi.runtime.test
def test_mount_path_output_names_the_volume():
    volume = db_partial.volumes[-1]
    mount = db_partial.container["volumeMounts"][-1]
    assert "persistentVolumeClaim" in volume

    def check_mount(args):
        volume_name, mount_name, mount_path = args
        assert volume_name == "data"
        assert mount_name == "data"
        assert mount_path == "/var/lib/data"

    return pulumi.Output.all(volume["name"], mount["name"], mount["mountPath"]).apply(
        check_mount
    )


@pulumi.runtime.test
def test_stateful_set_is_governed_by_its_service():
    def check_stateful_set(args):
        name, spec = args
        assert name == "db"
        assert spec.replicas == 3
        assert spec.service_name == "db-service"
        assert spec.selector.match_labels == {"app": "db"}
        assert [c.name for c in spec.template.spec.containers] == ["postgres", "metrics"]

    return pulumi.Output.all(
        db_stateful_set.metadata.name, db_stateful_set.spec
    ).apply(check_stateful_set)


@pulumi.runtime.test
def test_stateful_set_service_is_headless():
    def check_service(args):
        name, spec = args
        assert name == "db-service"
        assert spec.cluster_ip == "None"
        assert spec.selector == {"app": "db"}
        assert [(port.name, port.port, port.target_port) for port in spec.ports] == [
            ("postgres", 5432, "postgres"),
            ("metrics", 9187, "metrics"),
        ]

    return pulumi.Output.all(
        db_headless_service.metadata.name, db_headless_service.spec
    ).apply(check_service)


def test_stateful_set_finalizes_the_builder():
    builder = PodBuilder("queue", provider, {"containers": [{"image": "rabbitmq:3"}]})
    builder.create_stateful_set("queue")
    with pytest.raises(PodBuilderFinalizedError):
        builder.create_deployment("queue-deployment")
