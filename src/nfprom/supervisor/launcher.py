"""Launching and watching the unprivileged metrics server child."""

from __future__ import annotations

import subprocess
import sys
import threading
from collections.abc import Callable, Sequence

from nfprom.errors import ServerExitedError
from nfprom.settings import ExporterSettings
from nfprom.utilities.logging_patterns import get_logger

logger = get_logger(__name__, component="launcher")


def server_command(settings: ExporterSettings, executable: str | None = None) -> list[str]:
    """Command line re-running this program in server mode with the same settings."""
    return [executable or sys.executable, "-m", "nfprom", "serve", *settings.to_server_args()]


class ServerProcess:
    """Handle on the running server child."""

    def __init__(self, process: subprocess.Popen) -> None:
        self.process = process
        self._watcher: threading.Thread | None = None

    @classmethod
    def spawn(cls, command: Sequence[str]) -> ServerProcess:
        """Start ``command`` sharing this process' stdout and stderr.

        Raises:
            ServerExitedError: the child could not be started.
        """
        logger.info(f"Forking off webserver process: {' '.join(command)}")
        try:
            process = subprocess.Popen(list(command))
        except OSError as exc:
            raise ServerExitedError(
                f"could not fork+exec webserver process: {exc}",
                original_error=exc,
            ) from exc
        logger.info(f"Webserver process started with pid {process.pid}", child_pid=process.pid)
        return cls(process)

    @property
    def pid(self) -> int:
        return self.process.pid

    def watch(self, on_exit: Callable[[int], None]) -> threading.Thread:
        """Wait for the child on a daemon thread and call ``on_exit(returncode)``."""

        def _wait() -> None:
            returncode = self.process.wait()
            logger.error(
                f"Webserver process with pid {self.pid} exited with code {returncode}",
                child_pid=self.pid,
                returncode=returncode,
            )
            on_exit(returncode)

        self._watcher = threading.Thread(target=_wait, daemon=True, name="ServerWatcher")
        self._watcher.start()
        return self._watcher

    def terminate(self) -> None:
        """Send SIGTERM to the child; its outcome is not checked."""
        if self.process.poll() is not None:
            return
        logger.info(f"Terminating webserver process {self.pid}", child_pid=self.pid)
        try:
            self.process.terminate()
        except ProcessLookupError:
            logger.debug(f"Webserver process {self.pid} already gone")


__all__ = ["ServerProcess", "server_command"]
