"""
Exceptions raised by the kx pod and container builders.

Value-shaped errors also derive from ValueError so that callers validating
configuration with a plain `except ValueError` keep catching them.
"""


class KxError(Exception):
    """Base class for all kx errors."""


class InvalidImageReferenceError(KxError, ValueError):
    """A container name could not be inferred from its image reference."""

    def __init__(self, image: object):
        self.image = image
        msg = f"Failed to parse image name from {image!r}"
        super().__init__(msg)


class MissingRequiredFieldError(KxError, ValueError):
    """A builder was constructed without one of its required inputs."""

    def __init__(self, field_name: str, owner: str | None = None):
        self.field_name = field_name
        self.owner = owner
        msg = f"Missing required field '{field_name}'"
        if owner:
            msg = f"{msg} for {owner}"
        super().__init__(msg)


class InvalidFragmentError(KxError, ValueError):
    """A partial pod spec must hold exactly one container or init container."""


class EmptyFragmentListError(KxError, ValueError):
    """At least one partial pod spec is needed to build a pod spec."""

    def __init__(self):
        super().__init__("Cannot merge an empty list of partial pod specs")


class PodBuilderFinalizedError(KxError, RuntimeError):
    """The pod builder was already turned into a workload resource."""
