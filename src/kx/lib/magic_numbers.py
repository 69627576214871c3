"""
Module of meaningful integer values.

This module consists of constants that are used to provide meaningful representations of
integer values used when building Kubernetes workloads.
"""

DEFAULT_APP_PORT = 8080
DEFAULT_CRONJOB_FAILED_JOBS_HISTORY_LIMIT = 1
DEFAULT_CRONJOB_SUCCESSFUL_JOBS_HISTORY_LIMIT = 3
DEFAULT_DAEMONSET_MIN_READY_SECONDS = 0
DEFAULT_DAEMONSET_REVISION_HISTORY_LIMIT = 10
DEFAULT_HTTP_PORT = 80
DEFAULT_JOB_ACTIVE_DEADLINE_SECONDS = 600
DEFAULT_JOB_BACKOFF_LIMIT = 6
DEFAULT_REPLICAS = 1
MAXIMUM_K8S_NAME_LENGTH = 63
