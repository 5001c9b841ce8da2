from kubepool.cluster.credentials import (
    ChainedCredentials as ChainedCredentials,
    CredentialResolver as CredentialResolver,
    InClusterCredentials as InClusterCredentials,
    KubeConfigCredentials as KubeConfigCredentials,
    credentials_from_env as credentials_from_env,
)
from kubepool.cluster.endpoints_source import EndpointsSource as EndpointsSource
