"""Shared configuration loader: node RPC settings and split rules."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Mapping
from urllib.parse import urlparse

import yaml

from .model import Include, SplitConfig, Token
from .opcodes import opcode_from_name


class ConfigurationError(RuntimeError):
    """Raised when configuration is invalid."""


DEFAULT_CONFIG_PATH = Path.home() / ".bpu.yaml"
DEFAULT_RPC_PORT = 8332
_CONFIG_PATH_OVERRIDE: Path | None = None


@dataclass
class RPCConfig:
    """Connection details for a bitcoind-compatible JSON-RPC node."""

    user: str
    password: str
    host: str = "127.0.0.1"
    port: int = DEFAULT_RPC_PORT
    use_https: bool = False

    @property
    def base_url(self) -> str:
        scheme = "https" if self.use_https else "http"
        return f"{scheme}://{self.host}:{self.port}"


def set_default_config_path(path: str | Path | None) -> None:
    """Remember a user-supplied config path for future loads."""

    global _CONFIG_PATH_OVERRIDE
    _CONFIG_PATH_OVERRIDE = Path(path).expanduser() if path else None


def _load_config_file(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.exists():
        if required:
            raise ConfigurationError(f"Config file not found: {path}")
        return {}

    try:
        loaded = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as exc:  # pragma: no cover - delegated to PyYAML
        raise ConfigurationError(f"Invalid YAML in config file {path}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise ConfigurationError(f"Expected {path} to contain a YAML mapping")
    return loaded


def _coerce_bool(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"1", "true", "yes", "y", "on"}:
            return True
        if normalized in {"0", "false", "no", "n", "off"}:
            return False
    return None


def _coerce_port(raw: Any, *, source: str) -> int | None:
    if raw is None:
        return None
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid port in {source}: {raw}") from exc


def _first_value(*values: Any, default: Any = None) -> Any:
    for value in values:
        if value is not None:
            return value
    return default


def _parse_endpoint(raw: str | None) -> tuple[str | None, int | None, bool | None]:
    if not raw:
        return None, None, None
    parsed = urlparse(raw)
    if not parsed.scheme and not parsed.hostname:
        raise ConfigurationError(f"Invalid RPC endpoint URL: {raw}")
    host = parsed.hostname or None
    port = parsed.port
    use_https = parsed.scheme.lower() == "https" if parsed.scheme else None
    return host, port, use_https


def _resolve_path(config_path: str | Path | None) -> tuple[Path, bool]:
    explicit = config_path is not None or _CONFIG_PATH_OVERRIDE is not None
    if config_path is not None:
        return Path(config_path).expanduser(), explicit
    return _CONFIG_PATH_OVERRIDE or DEFAULT_CONFIG_PATH, explicit


def load_rpc_config(
    *,
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> RPCConfig:
    """Load RPC configuration from overrides, ``BPU_RPC_*`` variables and YAML."""

    env_map = os.environ if env is None else env
    path, explicit_path = _resolve_path(config_path)

    file_config = _load_config_file(path, required=explicit_path)
    rpc_section = file_config.get("rpc", {}) or {}
    if not isinstance(rpc_section, dict):
        raise ConfigurationError(f"Expected 'rpc' to be a mapping in {path}")

    override_map = dict(overrides or {})

    env_port = _coerce_port(env_map.get("BPU_RPC_PORT"), source="environment")
    env_use_https = _coerce_bool(env_map.get("BPU_RPC_USE_HTTPS"))

    endpoint_host, endpoint_port, endpoint_use_https = _parse_endpoint(
        _first_value(
            override_map.get("endpoint"),
            env_map.get("BPU_RPC_ENDPOINT") or env_map.get("BPU_RPC_URL"),
            rpc_section.get("endpoint"),
        )
    )

    resolved_user = _first_value(
        override_map.get("user"), env_map.get("BPU_RPC_USER"), rpc_section.get("user")
    )
    resolved_password = _first_value(
        override_map.get("password"), env_map.get("BPU_RPC_PASSWORD"), rpc_section.get("password")
    )
    if not resolved_user or not resolved_password:
        raise ConfigurationError(
            "RPC credentials must be provided via BPU_RPC_* environment variables or a config file"
        )

    resolved_host = _first_value(
        override_map.get("host"),
        endpoint_host,
        env_map.get("BPU_RPC_HOST"),
        rpc_section.get("host"),
        "127.0.0.1",
    )
    resolved_port = _first_value(
        _coerce_port(override_map.get("port"), source="overrides"),
        endpoint_port,
        env_port,
        _coerce_port(rpc_section.get("port"), source=f"{path} rpc.port"),
        DEFAULT_RPC_PORT,
    )
    resolved_use_https = _first_value(
        _coerce_bool(override_map.get("use_https")),
        endpoint_use_https,
        env_use_https,
        _coerce_bool(rpc_section.get("use_https")),
        False,
    )

    return RPCConfig(
        user=resolved_user,
        password=resolved_password,
        host=resolved_host,
        port=resolved_port,
        use_https=bool(resolved_use_https),
    )


def _parse_include(raw: Any, *, where: str) -> Include:
    if raw is None:
        return Include.LEFT
    if isinstance(raw, str):
        try:
            return Include(raw.strip().lower())
        except ValueError:
            pass
    raise ConfigurationError(f"{where}.include must be one of left, right, center (got {raw!r})")


def _parse_rule(entry: Any, *, where: str) -> SplitConfig:
    if not isinstance(entry, dict):
        raise ConfigurationError(f"{where} must be a mapping")

    op = entry.get("op")
    if op is not None:
        if isinstance(op, bool) or not isinstance(op, int) or not 0 <= op <= 0xFF:
            raise ConfigurationError(f"{where}.op must be an integer between 0 and 255")

    ops = entry.get("ops")
    if ops is not None:
        try:
            opcode_from_name(str(ops))
        except ValueError as exc:
            raise ConfigurationError(f"{where}.ops: {exc}") from exc
        ops = str(ops).strip().upper()
        if not ops.startswith("OP_"):
            ops = "OP_" + ops

    raw_b = entry.get("b")
    b: bytes | None = None
    if raw_b is not None:
        try:
            b = bytes.fromhex(str(raw_b))
        except ValueError as exc:
            raise ConfigurationError(f"{where}.b must be hex-encoded bytes") from exc

    s = entry.get("s")
    if s is not None:
        s = str(s)

    if op is None and ops is None and b is None and s is None:
        raise ConfigurationError(f"{where} must set at least one of op, ops, b, s")

    return SplitConfig(
        token=Token(op=op, ops=ops, b=b, s=s),
        include=_parse_include(entry.get("include"), where=where),
    )


def parse_split_rules(payload: Any) -> List[SplitConfig]:
    """Convert a loosely-typed ``split`` list into ordered :class:`SplitConfig` rules."""

    if not isinstance(payload, list):
        raise ConfigurationError("split must be a list of rules")
    return [_parse_rule(entry, where=f"split[{index}]") for index, entry in enumerate(payload)]


def load_split_config(path: str | Path) -> List[SplitConfig]:
    """Load split rules from the ``split`` section of a YAML file."""

    path = Path(path).expanduser()
    data = _load_config_file(path, required=True)
    if "split" not in data:
        raise ConfigurationError(f"{path} has no 'split' section")
    return parse_split_rules(data["split"])
