"""Shared pytest fixtures for the kx tests."""

import pytest


@pytest.fixture
def nginx_container():
    """Return a shorthand container using every supported shorthand form.

    :returns: A container with an env map, a port map and a mount descriptor.
    :rtype: dict
    """
    return {
        "image": "docker.io/library/nginx:1.25",
        "env": {"NGINX_PORT": "8080"},
        "ports": {"http": 8080},
        "volumeMounts": [
            {"volume": {"name": "cache", "emptyDir": {}}, "destPath": "/var/cache"}
        ],
    }


@pytest.fixture
def pod_labels():
    """Return the labels of the pods built in tests.

    :returns: Pod labels.
    :rtype: dict
    """
    return {"app": "nginx", "tier": "frontend"}
