"""Running firewall dump commands."""

from __future__ import annotations

import subprocess
from collections.abc import Callable, Sequence

from nfprom.errors import SourceUnavailableError
from nfprom.utilities.logging_patterns import get_logger

logger = get_logger(__name__, component="sources")

CommandRunner = Callable[[Sequence[str]], str]


def run_command(argv: Sequence[str], timeout: float = 10.0) -> str:
    """Run ``argv`` and return its complete standard output.

    Raises:
        SourceUnavailableError: the command is missing, fails, times out or
            produces output that cannot be decoded. An empty firewall is an
            empty string, never an exception.
    """
    command = " ".join(argv)
    logger.debug(f"Running {command}", command=command)
    try:
        result = subprocess.run(
            list(argv),
            capture_output=True,
            check=True,
            encoding="utf-8",
            timeout=timeout,
        )
    except FileNotFoundError as exc:
        raise SourceUnavailableError(
            f"{argv[0]} not found", source=command, original_error=exc
        ) from exc
    except subprocess.TimeoutExpired as exc:
        raise SourceUnavailableError(
            f"{command} did not finish within {timeout}s", source=command, original_error=exc
        ) from exc
    except subprocess.CalledProcessError as exc:
        stderr = (exc.stderr or "").strip()
        raise SourceUnavailableError(
            f"{command} exited with code {exc.returncode}: {stderr}",
            source=command,
            original_error=exc,
        ) from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise SourceUnavailableError(
            f"could not read output of {command}: {exc}", source=command, original_error=exc
        ) from exc
    return result.stdout


__all__ = ["CommandRunner", "run_command"]
