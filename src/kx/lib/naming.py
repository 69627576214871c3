import re
from pathlib import PurePosixPath

from kx.lib.errors import InvalidImageReferenceError
from kx.lib.magic_numbers import MAXIMUM_K8S_NAME_LENGTH

# [registry/][path/]name[:tag][@digest]
IMAGE_REFERENCE_PATTERN = re.compile(
    r"^(?:.*/)?(?P<image>[A-Za-z0-9][\w.-]*?)(?::(?P<tag>[\w.-]+))?(?:@(?P<digest>[\w:+.-]+))?$"  # noqa: E501
)


def truncate_k8s_metanames(name: str) -> str:
    """
    Sanitize the names we use for k8s objects
    """
    return name[:MAXIMUM_K8S_NAME_LENGTH].rstrip("-_.")


def dns_label(name: str) -> str:
    """Coerce a string into an RFC 1123 DNS label."""
    label = re.sub(r"[^a-z0-9-]", "-", name.lower())
    label = re.sub(r"^[^a-z0-9]+|[^a-z0-9]+$", "", label)
    return truncate_k8s_metanames(label)


def infer_container_name(image: object) -> str:
    """Derive a container name from the image it runs.

    The name is the last path segment of the image reference, without its tag or
    digest, e.g. `registry.io/org/my-app:1.2.3` becomes `my-app`.

    :param image: The image reference of the container.
    :type image: str

    :raises InvalidImageReferenceError: If the image is missing, is not a plain string
        (e.g. an unresolved Pulumi Output) or does not contain an image name.

    :returns: A DNS label safe container name.

    :rtype: str
    """
    if not isinstance(image, str):
        raise InvalidImageReferenceError(image)
    match = IMAGE_REFERENCE_PATTERN.match(image)
    if match is None:
        raise InvalidImageReferenceError(image)
    name = dns_label(match.group("image"))
    if not name:
        raise InvalidImageReferenceError(image)
    return name


def create_dns_string(filepath: str) -> str:
    """Create an RFC 1123 name from the final component of a file path.

    The file extension is dropped, e.g. `/etc/nginx/nginx.conf` becomes `nginx`.
    """
    name = PurePosixPath(filepath).stem
    name = re.sub(r"[^0-9a-zA-Z-]", "", name)
    name = re.sub(r"^[^a-zA-Z0-9]*|[^a-zA-Z0-9]*$", "", name)
    name = truncate_k8s_metanames(name.lower())
    if not name:
        msg = f"Unable to derive a DNS name from the path '{filepath}'"
        raise ValueError(msg)
    return name
