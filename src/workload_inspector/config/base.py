"""Configuration types loaded from the process environment."""

# Standard library imports
import base64
import binascii
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Optional

# Local imports
from ..core.exceptions import ConfigError
from ..utils.logger import get_logger

logger = get_logger(__name__)

NATS_SERVERS_ENV = "NEX_WORKLOAD_NATS_SERVERS"
NATS_NKEY_ENV = "NEX_WORKLOAD_NATS_NKEY"
NATS_B64_JWT_ENV = "NEX_WORKLOAD_NATS_B64_JWT"
HTTP_PORT_ENV = "INSPECTOR_HTTP_PORT"
HTTP_AUTH_ENV = "INSPECTOR_HTTP_AUTH"
COMMAND_TIMEOUT_ENV = "INSPECTOR_COMMAND_TIMEOUT"
LOG_LEVEL_ENV = "INSPECTOR_LOG_LEVEL"
CONTAINER_ENV = "container"

DEFAULT_HTTP_PORT = "8080"
CREDS_FILENAME = "creds.txt"

CREDS_TEMPLATE = """-----BEGIN NATS USER JWT-----
{jwt}
------END NATS USER JWT------

************************* IMPORTANT *************************
NKEY Seed printed below can be used to sign and prove identity.
NKEYs are sensitive and should be treated as secrets.

-----BEGIN USER NKEY SEED-----
{nkey}
------END USER NKEY SEED------

*************************************************************
"""


@dataclass
class WorkloadsConfig:
    """NATS connection settings for the workload.

    Attributes:
        nats_servers: Comma separated server URLs
        nats_nkey: User nkey seed
        nats_jwt: Decoded user JWT
    """

    nats_servers: str
    nats_nkey: str
    nats_jwt: str

    @property
    def servers(self) -> List[str]:
        return [s.strip() for s in self.nats_servers.split(",") if s.strip()]


@dataclass
class HttpConfig:
    """HTTP transport settings."""

    port: str = DEFAULT_HTTP_PORT
    use_auth: bool = False

    @property
    def port_number(self) -> int:
        try:
            return int(self.port)
        except ValueError as e:
            raise ConfigError(f"{HTTP_PORT_ENV} is not a valid port: {self.port}") from e


@dataclass
class InspectorConfig:
    """Complete service configuration."""

    workloads: Optional[WorkloadsConfig] = None
    http: HttpConfig = field(default_factory=HttpConfig)
    command_timeout: Optional[float] = None
    log_level: str = "INFO"
    in_container: bool = False

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        require_workloads: bool = True,
    ) -> "InspectorConfig":
        """Build configuration from environment variables.

        Args:
            environ: Mapping to read from, defaults to ``os.environ``
            require_workloads: Whether the NATS settings must be present

        Raises:
            ConfigError: If a required variable is missing or invalid
        """
        env = os.environ if environ is None else environ

        workloads = None
        if require_workloads:
            workloads = _load_workloads(env)

        return cls(
            workloads=workloads,
            http=HttpConfig(
                port=env.get(HTTP_PORT_ENV) or DEFAULT_HTTP_PORT,
                use_auth=env.get(HTTP_AUTH_ENV, "") == "true",
            ),
            command_timeout=_parse_timeout(env.get(COMMAND_TIMEOUT_ENV)),
            log_level=(env.get(LOG_LEVEL_ENV) or "INFO").upper(),
            in_container=bool(env.get(CONTAINER_ENV)),
        )

    def save_creds(self, directory: Optional[Path] = None) -> Path:
        """Write the NATS user credentials file and return its path.

        Args:
            directory: Target directory, defaults to the user's home

        Raises:
            ConfigError: If no workload credentials are configured or the
                file cannot be written
        """
        if self.workloads is None:
            raise ConfigError("no NATS workload credentials configured")

        directory = Path(directory) if directory else Path.home()
        path = directory / CREDS_FILENAME
        content = CREDS_TEMPLATE.format(
            jwt=self.workloads.nats_jwt, nkey=self.workloads.nats_nkey
        )
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
        except OSError as e:
            raise ConfigError(f"error writing nats creds file: {e}") from e

        logger.info("nats creds file written to %s", path)
        return path


def _load_workloads(env: Mapping[str, str]) -> WorkloadsConfig:
    nats_servers = env.get(NATS_SERVERS_ENV, "")
    if not nats_servers:
        raise ConfigError(f"missing {NATS_SERVERS_ENV}")

    nats_nkey = env.get(NATS_NKEY_ENV, "").strip()
    if not nats_nkey:
        raise ConfigError(f"missing {NATS_NKEY_ENV}")

    nats_jwt_b64 = env.get(NATS_B64_JWT_ENV, "")
    if not nats_jwt_b64:
        raise ConfigError(f"missing {NATS_B64_JWT_ENV}")

    try:
        nats_jwt = base64.b64decode(nats_jwt_b64, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        raise ConfigError(f"{NATS_B64_JWT_ENV} is invalid base64: {e}") from e

    return WorkloadsConfig(
        nats_servers=nats_servers,
        nats_nkey=nats_nkey,
        nats_jwt=nats_jwt.strip(),
    )


def _parse_timeout(value: Optional[str]) -> Optional[float]:
    if value is None or not value.strip():
        return None
    try:
        timeout = float(value)
    except ValueError as e:
        raise ConfigError(f"Invalid value for {COMMAND_TIMEOUT_ENV}: {value}") from e
    if timeout <= 0:
        raise ConfigError(f"{COMMAND_TIMEOUT_ENV} must be positive, got {value}")
    return timeout
