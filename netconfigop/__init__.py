"""Validate, default, compare and render cluster network configuration into Kubernetes manifests."""

__version__ = "0.0.1"