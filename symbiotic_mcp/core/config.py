"""Configuration loading and validation for Symbiotic MCP.

Settings come from (lowest to highest precedence):
1. Built-in defaults
2. An optional YAML config file
3. Environment variables

The result is an immutable ServerConfig that is built and validated once
at startup and handed to every component that needs it.
"""

import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Mapping, Optional
from urllib.parse import urlparse

import yaml

from symbiotic_mcp.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CLI_PATH = "symbiotic-cli"
DEFAULT_TARGET_API = "https://api.symbioticsec.ai"
DEFAULT_PROCESS_TIMEOUT_MS = 300000  # 5 minutes
MIN_PROCESS_TIMEOUT_MS = 1000
DEFAULT_TEMP_PREFIX = "symbiotic_mcp_"

CONFIG_FILE_ENV = "SYMBIOTIC_MCP_CONFIG"
USER_CONFIG_PATH = Path.home() / ".config" / "symbiotic-mcp" / "config.yaml"
LOCAL_CONFIG_PATH = Path("symbiotic-mcp.yaml")


@dataclass(frozen=True)
class ServerSettings:
    mode: str = "stdio"  # "stdio" | "http"
    port: Optional[int] = None
    hostname: str = "0.0.0.0"


@dataclass(frozen=True)
class SymbioticSettings:
    cli_path: str = DEFAULT_CLI_PATH
    target_api: str = DEFAULT_TARGET_API
    api_token: Optional[str] = None
    is_online: bool = True
    process_timeout_ms: int = DEFAULT_PROCESS_TIMEOUT_MS


@dataclass(frozen=True)
class PathSettings:
    working_dir: Optional[str] = None
    workspace_folder: Optional[str] = None
    scan_target: Optional[str] = None
    project_dir: Optional[str] = None


@dataclass(frozen=True)
class TempFileSettings:
    prefix: str = DEFAULT_TEMP_PREFIX
    cleanup_on_error: bool = True


@dataclass(frozen=True)
class ServerConfig:
    server: ServerSettings = field(default_factory=ServerSettings)
    symbiotic: SymbioticSettings = field(default_factory=SymbioticSettings)
    paths: PathSettings = field(default_factory=PathSettings)
    temp_files: TempFileSettings = field(default_factory=TempFileSettings)
    log_level: str = "INFO"

    @property
    def is_http_mode(self) -> bool:
        return self.server.mode == "http" and self.server.port is not None

    @property
    def requires_api_token(self) -> bool:
        return self.symbiotic.is_online and not self.symbiotic.api_token

    def redacted(self) -> dict:
        """Return the config as a dict that is safe to log."""
        data = asdict(self)
        if data["symbiotic"]["api_token"]:
            data["symbiotic"]["api_token"] = "[REDACTED]"
        return data


def _clean(value) -> Optional[str]:
    """Strip a raw setting, treating blank strings as unset."""
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _parse_int(value, name: str) -> Optional[int]:
    value = _clean(value)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")


def _parse_flag(value, default: bool) -> bool:
    """Flags are on unless explicitly set to "false"."""
    if isinstance(value, bool):
        return value
    value = _clean(value)
    if value is None:
        return default
    return value.lower() != "false"


def find_config_file(environ: Mapping[str, str]) -> Optional[Path]:
    """Locate the optional YAML config file."""
    explicit = _clean(environ.get(CONFIG_FILE_ENV))
    if explicit:
        path = Path(explicit).expanduser()
        if not path.exists():
            raise ConfigurationError(f"{CONFIG_FILE_ENV} points to a missing file: {path}")
        return path

    for candidate in (USER_CONFIG_PATH, LOCAL_CONFIG_PATH):
        if candidate.exists():
            return candidate

    return None


def load_config_file(path: Path) -> dict:
    """Read a YAML config file into a plain dict of sections."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in config file {path}: {e}")

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping at the top level")

    logger.debug(f"Loaded config file: {path}")
    return data


def load_config(
    environ: Optional[Mapping[str, str]] = None, config_file: Optional[Path] = None
) -> ServerConfig:
    """
    Build and validate the server configuration.

    Args:
        environ: Environment mapping (defaults to os.environ)
        config_file: Explicit YAML file; when omitted the usual locations are searched

    Returns:
        Validated, immutable ServerConfig

    Raises:
        ConfigurationError: If any setting is invalid
    """
    env = os.environ if environ is None else environ

    path = config_file or find_config_file(env)
    file_data = load_config_file(path) if path else {}

    server_file = file_data.get("server") or {}
    symbiotic_file = file_data.get("symbiotic") or {}
    paths_file = file_data.get("paths") or {}
    temp_file = file_data.get("temp_files") or {}
    logging_file = file_data.get("logging") or {}

    def pick(env_name: str, section: dict, key: str):
        env_value = _clean(env.get(env_name))
        return env_value if env_value is not None else section.get(key)

    server = ServerSettings(
        mode=(_clean(pick("SERVER_MODE", server_file, "mode")) or "stdio").lower(),
        port=_parse_int(pick("SERVER_PORT", server_file, "port"), "SERVER_PORT"),
        hostname=_clean(pick("SERVER_HOSTNAME", server_file, "hostname")) or "0.0.0.0",
    )

    timeout = _parse_int(
        pick("SYMBIOTIC_PROCESS_TIMEOUT", symbiotic_file, "process_timeout_ms"),
        "SYMBIOTIC_PROCESS_TIMEOUT",
    )
    symbiotic = SymbioticSettings(
        cli_path=_clean(pick("SYMBIOTIC_CLI_PATH", symbiotic_file, "cli_path")) or DEFAULT_CLI_PATH,
        target_api=_clean(pick("SYMBIOTIC_TARGET_API", symbiotic_file, "target_api"))
        or DEFAULT_TARGET_API,
        api_token=_clean(pick("SYMBIOTIC_API_TOKEN", symbiotic_file, "api_token")),
        is_online=_parse_flag(pick("SYMBIOTIC_IS_ONLINE", symbiotic_file, "is_online"), True),
        process_timeout_ms=DEFAULT_PROCESS_TIMEOUT_MS if timeout is None else timeout,
    )

    paths = PathSettings(
        working_dir=_clean(pick("MCP_WORKING_DIR", paths_file, "working_dir")),
        workspace_folder=_clean(pick("WORKSPACE_FOLDER", paths_file, "workspace_folder")),
        scan_target=_clean(env.get("MCP_SCAN_TARGET"))
        or _clean(pick("SCAN_TARGET", paths_file, "scan_target")),
        project_dir=_clean(pick("PROJECT_DIR", paths_file, "project_dir")),
    )

    temp_files = TempFileSettings(
        prefix=_clean(pick("SYMBIOTIC_TEMP_PREFIX", temp_file, "prefix")) or DEFAULT_TEMP_PREFIX,
        cleanup_on_error=_parse_flag(
            pick("SYMBIOTIC_CLEANUP_ON_ERROR", temp_file, "cleanup_on_error"), True
        ),
    )

    log_level = (_clean(pick("SYMBIOTIC_MCP_LOG_LEVEL", logging_file, "level")) or "INFO").upper()

    config = ServerConfig(
        server=server,
        symbiotic=symbiotic,
        paths=paths,
        temp_files=temp_files,
        log_level=log_level,
    )
    validate_config(config)
    return config


def validate_config(config: ServerConfig) -> None:
    """Check field-level constraints. Raises ConfigurationError listing every issue."""
    issues = []

    if config.server.mode not in ("stdio", "http"):
        issues.append(f"server.mode: expected 'stdio' or 'http', got {config.server.mode!r}")

    if config.server.port is not None and not 1 <= config.server.port <= 65535:
        issues.append(f"server.port: must be between 1 and 65535, got {config.server.port}")

    if config.symbiotic.process_timeout_ms < MIN_PROCESS_TIMEOUT_MS:
        issues.append(
            f"symbiotic.process_timeout_ms: must be at least {MIN_PROCESS_TIMEOUT_MS}, "
            f"got {config.symbiotic.process_timeout_ms}"
        )

    parsed = urlparse(config.symbiotic.target_api)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        issues.append(f"symbiotic.target_api: invalid URL {config.symbiotic.target_api!r}")

    if logging.getLevelName(config.log_level) == f"Level {config.log_level}":
        issues.append(f"logging.level: unknown level {config.log_level!r}")

    if issues:
        raise ConfigurationError(f"Configuration validation failed: {', '.join(issues)}")


def validate_environment(config: ServerConfig) -> None:
    """
    Startup checks that depend on combinations of settings.

    Raises:
        ConfigurationError: Online mode without API token, or HTTP mode without port
    """
    if config.requires_api_token:
        raise ConfigurationError(
            "SYMBIOTIC_API_TOKEN environment variable is required when running in online mode"
        )

    if config.server.mode == "http" and config.server.port is None:
        raise ConfigurationError("SERVER_PORT must be specified when running in HTTP mode")
