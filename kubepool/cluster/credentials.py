"""
Credential resolution strategies for the Kubernetes API client.

In-cluster credentials come from the pod's service account and are
ambient process state. The pool never loads them implicitly; a resolver is
passed to ``Pool.create`` (``InClusterCredentials`` when none is given).
"""

from typing import Protocol, runtime_checkable

from kubernetes import client, config

from kubepool.env import Env
from kubepool.errors import CredentialsError


@runtime_checkable
class CredentialResolver(Protocol):
    name: str

    def resolve(self) -> client.ApiClient:
        """Return an authenticated API client or raise ``CredentialsError``."""
        ...


class InClusterCredentials:
    """Service account token and CA mounted into the running pod."""

    name = "in-cluster"

    def resolve(self) -> client.ApiClient:
        configuration = client.Configuration()

        try:
            config.load_incluster_config(client_configuration=configuration)

        except config.ConfigException as err:
            raise CredentialsError(self.name, str(err)) from err

        return client.ApiClient(configuration)


class KubeConfigCredentials:
    """A kubeconfig file, for running outside the cluster."""

    name = "kubeconfig"

    def __init__(
        self,
        config_file: str | None = None,
        context: str | None = None,
    ) -> None:
        self.config_file = config_file
        self.context = context

    def resolve(self) -> client.ApiClient:
        configuration = client.Configuration()

        try:
            config.load_kube_config(
                config_file=self.config_file,
                context=self.context,
                client_configuration=configuration,
                persist_config=False,
            )

        except (config.ConfigException, OSError) as err:
            raise CredentialsError(self.name, str(err)) from err

        return client.ApiClient(configuration)


class ChainedCredentials:
    """Try each resolver in order and use the first that succeeds."""

    def __init__(self, *resolvers: CredentialResolver) -> None:
        if not resolvers:
            raise ValueError("ChainedCredentials requires at least one resolver")

        self.resolvers = resolvers
        self.name = " -> ".join(resolver.name for resolver in resolvers)

    def resolve(self) -> client.ApiClient:
        failures: list[str] = []

        for resolver in self.resolvers:
            try:
                return resolver.resolve()

            except CredentialsError as err:
                failures.append(str(err))

        raise CredentialsError(self.name, "; ".join(failures))


def credentials_from_env(env: Env) -> CredentialResolver:
    kubeconfig = KubeConfigCredentials(config_file=env.KUBEPOOL_KUBECONFIG)

    if env.KUBEPOOL_CREDENTIALS == "kubeconfig":
        return kubeconfig

    if env.KUBEPOOL_CREDENTIALS == "auto":
        return ChainedCredentials(InClusterCredentials(), kubeconfig)

    return InClusterCredentials()
