"""kubestate -- Kubernetes object state exposed as Prometheus metrics."""

__version__ = "0.1.0"
