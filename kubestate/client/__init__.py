"""Cluster API client boundary.

Exposes:
    ClusterClient            -- Protocol every client implementation satisfies.
    KubernetesClusterClient  -- kubernetes-asyncio backed implementation.
"""

from kubestate.client.base import ClusterClient
from kubestate.client.kubernetes import KubernetesClusterClient

__all__ = ["ClusterClient", "KubernetesClusterClient"]
