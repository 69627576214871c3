"""
Stack to deploy the k8s-demo application onto an existing cluster.

The kubeconfig is read from the outputs of the cluster stack named in
`k8s_demo:cluster_stack`.
"""

import json

import pulumi_kubernetes as kubernetes
from pulumi import Config, Output, StackReference, export, log

from kx.applications.k8s_demo.demo_resources import (
    K8sDemoConfig,
    create_demo_resources,
)
from kx.lib.pulumi_helper import parse_stack

stack_info = parse_stack()
log.info(f"{stack_info=}")

demo_config = Config("k8s_demo")
cluster_stack = StackReference(demo_config.require("cluster_stack"))

k8s_provider = kubernetes.Provider(
    stack_info.resource_name("kx-k8s-demo"),
    kubeconfig=cluster_stack.require_output("kubeconfig").apply(json.dumps),
)

config = K8sDemoConfig(
    name=demo_config.get("name") or "k8s-demo",
    namespace=demo_config.get("namespace") or "k8s-demo",
    hostname=demo_config.require("hostname"),
    image=demo_config.require("image"),
    ingress_class_name=demo_config.get("ingress_class_name") or "nginx",
    replicas=demo_config.get_int("replicas") or 1,
    docker_config_json=demo_config.get_secret("docker_config_json"),
)

demo_resources = create_demo_resources(config, k8s_provider)

ingress_hostname = demo_resources["ingress"].status.load_balancer.ingress[0].hostname

export("service_name", demo_resources["service"].metadata.name)
export("deployment_name", demo_resources["deployment"].metadata.name)
export("ingress_name", demo_resources["ingress"].metadata.name)
export(
    "full_curl_command",
    Output.concat(
        "curl -v -H 'Host: ",
        config.hostname,
        "' http://",
        ingress_hostname,
        config.ingress_path,
    ),
)
export("url", f"{config.hostname}{config.ingress_path}")
