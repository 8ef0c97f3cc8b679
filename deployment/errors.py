"""
Exceptions raised by the deployment tooling.

Library code raises these; the plan runner records them per step and the CLI
reports them and exits non-zero.
"""
from typing import List, Optional, Sequence


class DeploymentError(Exception):
    """Base class for image and Kubernetes deployment failures."""


class KubectlError(DeploymentError):
    """kubectl exited non-zero or timed out."""

    def __init__(self, command: Sequence[str], returncode: Optional[int], stderr: str = ""):
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr.strip()
        if returncode is None:
            message = f"`{' '.join(self.command)}` timed out"
        else:
            message = f"`{' '.join(self.command)}` exited with status {returncode}"
        if self.stderr:
            message = f"{message}: {self.stderr}"
        super().__init__(message)


class KubectlNotFoundError(DeploymentError):
    """The kubectl executable is not on PATH."""


class OverlayNotFoundError(DeploymentError):
    """An overlay directory or its kustomization file is missing."""


class ManifestParseError(DeploymentError):
    """Rendered manifests are not valid Kubernetes YAML."""


class DockerfileParseError(DeploymentError):
    """The Dockerfile cannot be split into stages."""


class DockerfileContractError(DeploymentError):
    """The Dockerfile does not satisfy the image contract."""

    def __init__(self, violations: List[str]):
        self.violations = list(violations)
        super().__init__("Dockerfile violates the image contract:\n  - " + "\n  - ".join(self.violations))


class ImageBuildError(DeploymentError):
    """docker build failed or docker is not installed."""


class ServiceUnavailableError(DeploymentError):
    """A deployed service did not answer its smoke checks."""
