"""
Deployment module for the container image and Kubernetes overlays.

This module contains all deployment-related components:
- Dockerfile parsing, image contract checks and docker builds
- Kustomize rendering and apply via kubectl
- Post-deploy smoke checks
"""
