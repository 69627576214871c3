from dataclasses import dataclass

from pulumi import get_stack

from kx.lib.naming import truncate_k8s_metanames


@dataclass
class StackInfo:
    """Container class for enapsulating standard information about a stack."""

    name: str
    namespace: str
    env_suffix: str
    env_prefix: str
    full_name: str

    def resource_name(self, base_name: str) -> str:
        """Suffix a resource name with the stack environment, e.g. `k8s-demo-dev`."""
        return truncate_k8s_metanames(f"{base_name}-{self.env_suffix}")


def parse_stack(stack: str | None = None) -> StackInfo:
    """Standardized method for extracting stack information.

    Stacks are named `<namespace>.<name>`, e.g. `applications.k8s_demo.Dev`.

    :param stack: The stack name to parse. Defaults to the currently selected stack.
    :type stack: str | None

    :returns: Parsed stack information for use in business logic.

    :rtype: StackInfo
    """
    stack = stack or get_stack()
    stack_name = stack.split(".")[-1]
    namespace = stack.rsplit(".", 1)[0]
    return StackInfo(
        name=stack_name,
        namespace=namespace,
        env_suffix=stack_name.lower(),
        env_prefix=namespace.rsplit(".", 1)[-1],
        full_name=stack,
    )
