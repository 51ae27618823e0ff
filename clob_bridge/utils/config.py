from __future__ import annotations
import os
import yaml
import dotenv
import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Type
from pydantic import BaseModel, ConfigDict, SecretStr, ValidationError, field_validator

from clob_bridge.utils.enums import LogFormat
from clob_bridge.utils.errors import ConfigError

DEFAULT_CLOB_HOST = "https://clob.polymarket.com"
POLYGON_CHAIN_ID = 137

PRIVATE_KEY_VARS = ("POLYMARKET_PRIVATE_KEY", "PRIVATE_KEY")
FUNDER_ADDRESS_VARS = ("POLYMARKET_PROXY_ADDRESS", "CLOB_FUNDER_ADDRESS")
SIGNATURE_TYPE_VAR = "POLYMARKET_SIGNATURE_TYPE"


class BridgeConfig(BaseModel):
    """Process-wide configuration, built once at startup and never mutated"""
    model_config = ConfigDict(frozen=True)

    private_key: SecretStr
    signature_type: Optional[int] = None
    funder_address: Optional[str] = None
    host: str = DEFAULT_CLOB_HOST
    chain_id: int = POLYGON_CHAIN_ID
    log_level: str = "INFO"
    log_format: LogFormat = LogFormat.JSON
    log_file: Optional[str] = None

    @field_validator("log_level")
    @classmethod
    def _normalise_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level '{value}'")
        return level

    @field_validator("funder_address")
    @classmethod
    def _blank_funder_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value


# ────────────────────────────────────────────────────────────────────────────────
# Internal helpers
# ────────────────────────────────────────────────────────────────────────────────

_VALID_SUFFIXES = {".yaml", ".yml"}

# YAML key -> (BridgeConfig field, expected type)
_YAML_FIELDS: Dict[str, tuple[str, Type]] = {
    "Host": ("host", str),
    "ChainId": ("chain_id", int),
    "LogLevel": ("log_level", str),
    "LogFormat": ("log_format", str),
    "LogFile": ("log_file", str),
    "SignatureType": ("signature_type", int),
    "FunderAddress": ("funder_address", str),
}

_FORBIDDEN_YAML_KEYS = {"PrivateKey", "private_key"}


def _load_yaml(path: Path) -> Dict[str, Any]:
    """Parse a YAML config file; an empty file yields an empty mapping"""
    try:
        with path.open("r", encoding="utf-8") as fp:
            data = yaml.safe_load(fp) or {}
    except yaml.YAMLError as err:
        raise ConfigError(f"YAML syntax error in {path}: {err}") from err
    except OSError as err:
        raise ConfigError(f"Unable to read config file {path}: {err}") from err
    if not isinstance(data, dict):
        raise ConfigError(f"Top‑level YAML must be a mapping, got {type(data).__name__}")
    return data


def _sections_to_fields(raw_cfg: Dict[str, Any], logger: logging.Logger) -> Dict[str, Any]:
    """Map and type-check the YAML sections we know about."""
    forbidden = _FORBIDDEN_YAML_KEYS & raw_cfg.keys()
    if forbidden:
        raise ConfigError("Private keys must come from the environment, not the config file")

    fields: Dict[str, Any] = {}
    for section, value in raw_cfg.items():
        if section not in _YAML_FIELDS:
            logger.warning(f"Ignoring unknown config section '{section}'")
            continue
        field_name, expected = _YAML_FIELDS[section]
        if value is None:
            continue
        if not isinstance(value, expected) or isinstance(value, bool):
            raise ConfigError(
                f"Section '{section}' must be of type "
                f"{expected.__name__}, got {type(value).__name__}"
            )
        fields[field_name] = value
    return fields


def _first_env(env: Mapping[str, str], names: tuple[str, ...]) -> Optional[str]:
    for name in names:
        value = env.get(name)
        if value is not None and value.strip():
            return value.strip()
    return None


def _env_fields(env: Mapping[str, str], logger: logging.Logger) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}

    private_key = _first_env(env, PRIVATE_KEY_VARS)
    if private_key:
        fields["private_key"] = private_key

    raw_sig_type = _first_env(env, (SIGNATURE_TYPE_VAR,))
    if raw_sig_type is not None:
        try:
            fields["signature_type"] = int(raw_sig_type)
        except ValueError:
            logger.warning(f"Ignoring non-integer {SIGNATURE_TYPE_VAR}={raw_sig_type!r}")

    funder = _first_env(env, FUNDER_ADDRESS_VARS)
    if funder:
        fields["funder_address"] = funder

    host = _first_env(env, ("CLOB_HOST",))
    if host:
        fields["host"] = host

    chain_id = _first_env(env, ("CLOB_CHAIN_ID",))
    if chain_id:
        try:
            fields["chain_id"] = int(chain_id)
        except ValueError:
            raise ConfigError(f"CLOB_CHAIN_ID must be an integer, got {chain_id!r}") from None

    for var, field_name in (("LOG_LEVEL", "log_level"), ("LOG_FORMAT", "log_format")):
        value = _first_env(env, (var,))
        if value:
            fields[field_name] = value.lower() if field_name == "log_format" else value

    return fields


# ────────────────────────────────────────────────────────────────────────────────
# Public API
# ────────────────────────────────────────────────────────────────────────────────

def load_config(
    logger: logging.Logger,
    config_path: str | Path | None = None,
    env: Optional[Mapping[str, str]] = None,
    overrides: Optional[Dict[str, Any]] = None,
    load_env_file: bool = True,
) -> BridgeConfig:
    """
    Build the bridge configuration.

    Parameters
    ----------
    logger : logging.Logger
        Logger instance for diagnostics.
    config_path : str | Path | None
        Optional YAML file (.yaml | .yml) with non-secret settings.
    env : Mapping[str, str] | None
        Environment to read; defaults to ``os.environ`` after loading ``.env``.
    overrides : dict | None
        Field values that win over every other source (command-line flags).

    Raises
    ------
    ConfigError
        Missing private key, unreadable file or invalid values.
    """
    fields: Dict[str, Any] = {}

    if config_path is not None:
        p = Path(config_path)
        if p.suffix not in _VALID_SUFFIXES:
            raise ConfigError("Config file must have a .yaml or .yml extension")
        if not p.is_file():
            raise ConfigError(f"Config file not found: {p}")
        logger.debug(f"Loading configuration from {p}")
        fields.update(_sections_to_fields(_load_yaml(p), logger))

    if env is None:
        if load_env_file:
            # Real environment variables win over .env entries
            dotenv.load_dotenv(override=False)
        env = os.environ
    fields.update(_env_fields(env, logger))

    if overrides:
        fields.update({k: v for k, v in overrides.items() if v is not None})

    if "private_key" not in fields:
        raise ConfigError(
            f"{' or '.join(PRIVATE_KEY_VARS)} environment variable must be set"
        )

    try:
        config = BridgeConfig(**fields)
    except ValidationError as err:
        raise ConfigError(f"Invalid configuration: {err}") from err

    logger.debug("Configuration loaded successfully")
    return config
