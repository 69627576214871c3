DEFAULT_NAMESPACE = "default"
DEFAULT_DAEMONSET_UPDATE_STRATEGY = "RollingUpdate"
DEFAULT_JOB_RESTART_POLICY = "Never"
DOCKER_CONFIG_JSON_KEY = ".dockerconfigjson"
DOCKER_CONFIG_JSON_SECRET_TYPE = "kubernetes.io/dockerconfigjson"  # noqa: S105
PODINFO_MOUNT_PATH = "/etc/podinfo"
PODINFO_VOLUME_NAME = "podinfo"
HEADLESS_CLUSTER_IP = "None"
