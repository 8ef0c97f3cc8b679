"""
Thin wrapper over the kubectl CLI.

Only the two commands the deployment plan needs are exposed: rendering an
overlay with ``kubectl kustomize`` and applying it with ``kubectl apply -k``.
"""
import logging
import subprocess
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

from deployment.errors import KubectlError, KubectlNotFoundError
from env_api.utils.decorators import log_execution_time

logger = logging.getLogger(__name__)

Runner = Callable[..., subprocess.CompletedProcess]


class KubectlClient:
    """Runs kubectl commands and returns their stdout."""

    def __init__(self, kubectl_bin: str = "kubectl", context: Optional[str] = None,
                 timeout: float = 120.0, runner: Runner = subprocess.run):
        self.kubectl_bin = kubectl_bin
        self.context = context
        self.timeout = timeout
        self._runner = runner

    @classmethod
    def from_settings(cls, settings, runner: Runner = subprocess.run) -> "KubectlClient":
        return cls(
            kubectl_bin=settings.kubectl_bin,
            context=settings.kubectl_context,
            timeout=settings.kubectl_timeout,
            runner=runner,
        )

    def build_command(self, *args: str) -> List[str]:
        command = [self.kubectl_bin]
        if self.context:
            command += ["--context", self.context]
        command += list(args)
        return command

    def run(self, args: Sequence[str]) -> str:
        """Run ``kubectl <args>`` and return stdout.

        Raises:
            KubectlNotFoundError: kubectl is not installed
            KubectlError: non-zero exit or timeout
        """
        command = self.build_command(*args)
        logger.debug(f"Running: {' '.join(command)}")
        try:
            result = self._runner(
                command,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise KubectlNotFoundError(
                f"{self.kubectl_bin} not found on PATH; install kubectl or set KUBECTL_BIN"
            ) from e
        except subprocess.TimeoutExpired as e:
            raise KubectlError(command, None, f"no result after {self.timeout}s") from e

        if result.returncode != 0:
            raise KubectlError(command, result.returncode, result.stderr or "")
        return result.stdout

    @log_execution_time(label="kubectl kustomize")
    def kustomize(self, overlay: Union[str, Path]) -> str:
        """Render an overlay to plain manifests."""
        return self.run(["kustomize", str(overlay)])

    @log_execution_time(label="kubectl apply")
    def apply_kustomization(self, overlay: Union[str, Path], dry_run: bool = False) -> str:
        """Apply an overlay to the current cluster context."""
        args = ["apply", "-k", str(overlay)]
        if dry_run:
            args.append("--dry-run=client")
        return self.run(args)
