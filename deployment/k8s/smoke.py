"""Post-deploy smoke checks against a running environment service."""
import logging
import time
from dataclasses import dataclass
from typing import Optional

import requests

from deployment.errors import ServiceUnavailableError

logger = logging.getLogger(__name__)


@dataclass
class ServiceCheck:
    base_url: str
    root_status: Optional[int] = None
    env_status: Optional[int] = None
    hostname: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.root_status == 200 and self.env_status == 200 and self.error is None


def check_service(base_url: str, session: Optional[requests.Session] = None,
                  timeout: float = 5.0) -> ServiceCheck:
    """GET ``/`` and ``/env`` once and report what came back."""
    session = session or requests.Session()
    base_url = base_url.rstrip("/")
    check = ServiceCheck(base_url=base_url)

    try:
        root_response = session.get(f"{base_url}/", timeout=timeout)
        check.root_status = root_response.status_code

        env_response = session.get(f"{base_url}/env", timeout=timeout)
        check.env_status = env_response.status_code
        if env_response.status_code == 200:
            payload = env_response.json()
            if isinstance(payload, dict):
                check.hostname = payload.get("HOSTNAME")
            else:
                check.error = f"/env returned {type(payload).__name__}, expected a JSON object"
    except requests.RequestException as e:
        check.error = str(e)
    except ValueError as e:
        check.error = f"/env did not return JSON: {e}"

    return check


def wait_for_service(base_url: str, attempts: int = 10, interval: float = 3.0,
                     session: Optional[requests.Session] = None,
                     sleep=time.sleep) -> ServiceCheck:
    """Poll the service until both endpoints answer 200.

    Raises:
        ServiceUnavailableError: the service never became healthy
    """
    session = session or requests.Session()
    check = ServiceCheck(base_url=base_url)
    for attempt in range(1, attempts + 1):
        check = check_service(base_url, session=session)
        if check.ok:
            logger.info(f"Service at {check.base_url} is up (HOSTNAME={check.hostname})")
            return check
        logger.info(
            f"Attempt {attempt}/{attempts}: / -> {check.root_status}, "
            f"/env -> {check.env_status}{f' ({check.error})' if check.error else ''}"
        )
        if attempt < attempts:
            sleep(interval)

    raise ServiceUnavailableError(
        f"Service at {base_url} not healthy after {attempts} attempts "
        f"(/ -> {check.root_status}, /env -> {check.env_status})"
    )
