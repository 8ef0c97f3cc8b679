"""Builds the service image after checking the Dockerfile against its contract."""
import logging
import subprocess
from pathlib import Path
from typing import Callable, List, Union

from deployment.errors import DockerfileContractError, ImageBuildError
from deployment.image.dockerfile import PYTHON_CONTRACT, ImageContract, check_contract, load_dockerfile
from env_api.utils.decorators import log_execution_time

logger = logging.getLogger(__name__)


def verify_dockerfile(dockerfile: Union[str, Path], contract: ImageContract = PYTHON_CONTRACT) -> None:
    """Raise ``DockerfileContractError`` unless the Dockerfile meets ``contract``."""
    violations = check_contract(load_dockerfile(dockerfile), contract)
    if violations:
        raise DockerfileContractError(violations)
    logger.info(f"{dockerfile} satisfies the image contract")


def build_command(tag: str, dockerfile: Union[str, Path], context: Union[str, Path],
                  platform: str, docker_bin: str = "docker") -> List[str]:
    return [
        docker_bin, "build",
        "--platform", platform,
        "-t", tag,
        "-f", str(dockerfile),
        str(context),
    ]


@log_execution_time(label="docker build")
def build_image(tag: str, dockerfile: Union[str, Path] = "Dockerfile", context: Union[str, Path] = ".",
                platform: str = "linux/amd64", docker_bin: str = "docker",
                contract: ImageContract = PYTHON_CONTRACT, skip_check: bool = False,
                runner: Callable[..., subprocess.CompletedProcess] = subprocess.run) -> str:
    """Build and tag the image, returning the tag.

    Raises:
        DockerfileContractError: the Dockerfile breaks the contract (checked first)
        ImageBuildError: docker is missing or the build failed
    """
    if not skip_check:
        verify_dockerfile(dockerfile, contract)

    command = build_command(tag, dockerfile, context, platform, docker_bin)
    logger.info(f"Building image {tag}: {' '.join(command)}")
    try:
        result = runner(command, capture_output=True, text=True)
    except FileNotFoundError as e:
        raise ImageBuildError(f"{docker_bin} not found on PATH") from e

    if result.returncode != 0:
        raise ImageBuildError(
            f"docker build exited with status {result.returncode}: {(result.stderr or '').strip()}"
        )
    return tag
