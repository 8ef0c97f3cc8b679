import logging
from typing import Dict

from fastapi import APIRouter

from env_api.environment import collect_environment

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/env", response_model=Dict[str, str])
async def get_env() -> Dict[str, str]:
    """
    Return the environment variables of the running process.

    HOSTNAME is refreshed from the machine hostname first, so inside a pod it
    matches the pod name.
    """
    logger.info("GET /env")
    return collect_environment()
