"""Snapshot of the process environment served by ``GET /env``."""
import os
import socket
from typing import Dict


def refresh_hostname() -> str:
    """Set ``HOSTNAME`` to the machine hostname.

    Shells export HOSTNAME but the container entrypoint runs without one,
    so the variable is written into the process environment before reading it.
    """
    hostname = socket.gethostname()
    os.environ["HOSTNAME"] = hostname
    return hostname


def collect_environment() -> Dict[str, str]:
    """Return every environment variable of this process, HOSTNAME included."""
    refresh_hostname()
    return dict(os.environ)
