"""
Kubernetes deployment tooling.

Wraps kubectl/kustomize for the dev and prod overlays under ``k8s/overlays``.
"""
