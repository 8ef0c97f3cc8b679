"""
Configuration management for the environment service.

Contains the Pydantic settings shared by the web app, the image builder
and the Kustomize deployment tooling.
"""
