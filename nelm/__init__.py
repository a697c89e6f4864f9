"""Operations, operation graphs, a caching kube client and dependency detection for Kubernetes release deployments."""

__version__ = "0.1.0"