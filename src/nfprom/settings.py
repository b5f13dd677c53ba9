"""Typed configuration backed by environment variables."""

from __future__ import annotations

from collections.abc import Sequence
from functools import lru_cache
from pathlib import Path
from typing import ClassVar, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from nfprom.domain import NFT_FAMILIES, is_label_name
from nfprom.errors import ConfigurationError

_DEFAULT_ENV_FILES: tuple[Path, ...] = (
    Path(".env"),
    Path("/etc/nfprom/nfprom.env"),
)


class ExporterSettings(BaseSettings):
    """Exporter configuration loaded from ``NFPROM_*`` variables and optional `.env` files.

    Built once at startup and handed to each component; nothing reads the
    environment after that.
    """

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_prefix="NFPROM_",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    namespace: str = Field(
        default="nfprom", description="Namespace (prefix) to use for Prometheus metrics."
    )
    listen: str = Field(default=":9830", description="ip:port for the metrics endpoint.")
    snapshot_path: Path = Field(
        default=Path("nftdata.json"),
        description="File the poller writes and the server reads.",
    )
    read_timeout: float = Field(
        default=3.0, gt=0, description="Seconds to wait for a client request to arrive."
    )
    refresh_interval: float = Field(
        default=15.0, gt=0, description="Seconds between two snapshot refreshes."
    )
    user: str = Field(default="nobody", description="User (name or UID) for the server process.")
    group: str = Field(
        default="nogroup", description="Group (name or GID) for the server process."
    )

    iptables_chain: str = Field(default="prometheus", description="iptables chain to monitor.")
    ipv4: bool = Field(default=True, description="Collect IPv4 stats (iptables only).")
    ipv6: bool = Field(default=False, description="Collect IPv6 stats (iptables only).")

    nft_family: str = Field(default="inet", description="nftables address family.")
    nft_table: str = Field(default="firewall", description="nftables table to use.")
    nft_chain: str = Field(default="accounting", description="nftables chain to use.")

    use_sudo: bool = Field(default=False, description="Prefix firewall commands with sudo.")
    command_timeout: float = Field(
        default=10.0, gt=0, description="Seconds a firewall dump command may run."
    )
    missing_label_value: str = Field(
        default="",
        description="Value emitted for a schema label a snapshot record does not carry.",
    )

    log_level: str = Field(default="INFO", description="Root log level.")
    log_format: Literal["text", "json"] = Field(default="text", description="Log line format.")
    log_dir: Path | None = Field(default=None, description="Directory for rotating log files.")

    @field_validator("namespace")
    @classmethod
    def _check_namespace(cls, value: str) -> str:
        if not is_label_name(value):
            raise ValueError(
                "namespace must start with a letter or underscore and contain only"
                " letters, digits and underscores"
            )
        return value

    @field_validator("nft_family")
    @classmethod
    def _check_nft_family(cls, value: str) -> str:
        if value not in NFT_FAMILIES:
            raise ValueError(f"nft_family must be one of {', '.join(NFT_FAMILIES)}")
        return value

    @property
    def listen_address(self) -> tuple[str, int]:
        """``listen`` split into ``(host, port)``; an empty host binds all interfaces."""
        return parse_listen_address(self.listen)

    def command_prefix(self) -> list[str]:
        return ["sudo"] if self.use_sudo else []

    def to_server_args(self) -> list[str]:
        """Options forwarded to the ``serve`` child so it mirrors this configuration."""
        return [
            "--snapshot-path",
            str(self.snapshot_path),
            "--listen",
            self.listen,
            "--timeout",
            str(self.read_timeout),
            "--namespace",
            self.namespace,
            "--user",
            self.user,
            "--group",
            self.group,
            "--missing-label-value",
            self.missing_label_value,
            "--log-level",
            self.log_level,
            "--log-format",
            self.log_format,
        ]


def parse_listen_address(listen: str) -> tuple[str, int]:
    """Split ``host:port`` (``[v6]:port`` for IPv6 literals) into its parts."""
    host, sep, port_text = listen.rpartition(":")
    if not sep:
        raise ConfigurationError(f"listen address {listen!r} is not host:port", config_key="listen")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    try:
        port = int(port_text)
    except ValueError as exc:
        raise ConfigurationError(
            f"listen address {listen!r} has a non-numeric port", config_key="listen"
        ) from exc
    if not 0 < port < 65536:
        raise ConfigurationError(
            f"listen port {port} is out of range", config_key="listen"
        )
    return host, port


def _existing_env_files() -> list[str]:
    return [str(path) for path in _DEFAULT_ENV_FILES if path.exists()]


@lru_cache
def get_settings(_env_files: Sequence[str] | None = None) -> ExporterSettings:
    """Load settings once per process, respecting `.env` fallbacks."""
    env_files = list(_env_files) if _env_files is not None else _existing_env_files()
    if env_files:
        return ExporterSettings(_env_file=env_files)
    return ExporterSettings()


__all__ = ["ExporterSettings", "get_settings", "parse_listen_address"]
