"""Click-based CLI entry point for the ``nfprom`` exporter.

Exit Codes
----------
- 0: Success (e.g. ``--version``)
- 1: Runtime error (firewall unreachable, server child died)
- 2: Configuration or privilege drop error
"""

from __future__ import annotations

import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import click
from pydantic import ValidationError

from nfprom import __version__
from nfprom.errors import (
    ConfigurationError,
    ExporterError,
    PrivilegeDropError,
    log_error,
)
from nfprom.logging import configure_logging
from nfprom.settings import ExporterSettings, get_settings
from nfprom.supervisor import run_direct, run_poller, run_server
from nfprom.utilities.logging_patterns import get_logger

logger = get_logger(__name__, component="cli")

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}

EXIT_RUNTIME_ERROR = 1
EXIT_CONFIG_ERROR = 2


def _resolve_settings(**overrides: Any) -> ExporterSettings:
    """Environment/.env settings with the options given on the command line on top."""
    explicit = {key: value for key, value in overrides.items() if value is not None}
    base = get_settings()
    try:
        return ExporterSettings.model_validate({**base.model_dump(), **explicit})
    except ValidationError as exc:
        raise ConfigurationError(f"invalid configuration: {exc}") from exc


def _start(settings: ExporterSettings) -> None:
    configure_logging(settings.log_level, settings.log_format, settings.log_dir)


def server_options(func: Any) -> Any:
    """Options shared by every command that serves /metrics."""
    options = [
        click.option("--listen", help="ip:port to listen on [default: :9830]."),
        click.option("--namespace", help="Namespace (prefix) to use for Prometheus metrics."),
        click.option(
            "--timeout",
            "read_timeout",
            type=click.FloatRange(min=0, min_open=True),
            help="Seconds to wait for a client request [default: 3].",
        ),
        click.option("--log-level", help="Log level [default: INFO]."),
        click.option(
            "--log-format",
            type=click.Choice(["text", "json"], case_sensitive=False),
            help="Log line format [default: text].",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group(
    context_settings=CONTEXT_SETTINGS,
    help="Export netfilter accounting counters to Prometheus.",
)
@click.version_option(__version__, "--version", "-v", message="nfprom version %(version)s")
def app() -> None:
    """CLI root group."""


@app.command("run")
@server_options
@click.option(
    "--snapshot-path",
    "--jsonfile",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Path to file for JSON data shared with the server [default: nftdata.json].",
)
@click.option("-u", "--user", help="User to switch to for privilege separation (UID or name).")
@click.option("-g", "--group", help="Group to switch to for privilege separation (GID or name).")
@click.option("--table", "nft_table", help="nftables table to use [default: firewall].")
@click.option("--chain", "nft_chain", help="nftables chain to use [default: accounting].")
@click.option("--family", "nft_family", help="nftables address family [default: inet].")
@click.option(
    "--interval",
    "refresh_interval",
    type=click.FloatRange(min=0, min_open=True),
    help="Seconds between snapshot refreshes [default: 15].",
)
@click.option("--log-dir", type=click.Path(file_okay=False, path_type=Path))
def run(**options: Any) -> None:
    """Run the privileged poller and its unprivileged metrics server."""
    settings = _resolve_settings(**options)
    _start(settings)
    logger.info(f"Prometheus nftables exporter v{__version__} (nftables/netlink process) starting")
    run_poller(settings)


@app.command("serve", hidden=True)
@server_options
@click.option("--snapshot-path", type=click.Path(dir_okay=False, path_type=Path))
@click.option("-u", "--user")
@click.option("-g", "--group")
@click.option("--missing-label-value")
def serve(**options: Any) -> None:
    """Internal: the unprivileged half started by ``run``."""
    settings = _resolve_settings(**options)
    _start(settings)
    logger.info(f"Prometheus nftables exporter v{__version__} (webserver process) starting")
    run_server(settings)


@app.command("direct")
@server_options
@click.option(
    "--source",
    "kind",
    type=click.Choice(["iptables", "nft-text"]),
    default="iptables",
    show_default=True,
    help="Firewall source read on every scrape.",
)
@click.option("--chain", help="Chain to monitor (iptables or nftables, depending on --source).")
@click.option("--ipv4/--no-ipv4", default=None, help="Collect IPv4 stats (iptables only).")
@click.option("--ipv6/--no-ipv6", default=None, help="Collect IPv6 stats (iptables only).")
@click.option("--table", "nft_table", help="nftables table to use.")
@click.option("--family", "nft_family", help="nftables address family.")
@click.option("--sudo/--no-sudo", "use_sudo", default=None, help="Prefix commands with sudo.")
def direct(kind: str, chain: str | None, **options: Any) -> None:
    """Serve firewall counters from this process, reading them on every scrape."""
    if chain is not None:
        options["iptables_chain" if kind == "iptables" else "nft_chain"] = chain
    settings = _resolve_settings(**options)
    _start(settings)
    logger.info(f"Prometheus {kind} exporter v{__version__} starting")
    run_direct(settings, kind)  # type: ignore[arg-type]


def main(argv: Sequence[str] | None = None) -> int:
    """Run the CLI and translate exporter errors into exit codes."""
    try:
        result = app.main(args=list(argv) if argv is not None else None, standalone_mode=False)
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code
    except click.exceptions.Abort:
        click.echo("Aborted!", err=True)
        return EXIT_RUNTIME_ERROR
    except (ConfigurationError, PrivilegeDropError) as exc:
        log_error(exc)
        return EXIT_CONFIG_ERROR
    except ExporterError as exc:
        log_error(exc)
        return EXIT_RUNTIME_ERROR
    return result if isinstance(result, int) else 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
