"""
Privilege separation.

A privileged poller writes snapshots; an unprivileged server child, started
from the same program, serves them. The death of the server ends the poller.
"""

from .launcher import ServerProcess, server_command
from .poller import Poller
from .privileges import drop_privileges
from .roles import run_direct, run_poller, run_server

__all__ = [
    "Poller",
    "ServerProcess",
    "server_command",
    "drop_privileges",
    "run_poller",
    "run_server",
    "run_direct",
]
