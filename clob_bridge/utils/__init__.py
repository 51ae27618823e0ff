"""
Utilities module for clob-bridge.

Configuration loading, enums, error types, parsing helpers and logging.
"""

# Configuration management
from .config import BridgeConfig, load_config

# Enums and constants
from .enums import (
    SignatureMode,
    PROBE_ORDER,
    OrderSide,
    OrderKind,
    AuthStatus,
    LogFormat,
)

# Helper functions
from .helpers import (
    generate_run_id,
    redact_secret,
    parse_token_id,
    parse_decimal,
    parse_side,
    parse_address,
)

# Logging utilities
from .logger import ThreadLogger, create_console_handler, create_file_handler

__all__ = [
    # Configuration
    "BridgeConfig",
    "load_config",

    # Enums
    "SignatureMode",
    "PROBE_ORDER",
    "OrderSide",
    "OrderKind",
    "AuthStatus",
    "LogFormat",

    # Helper functions
    "generate_run_id",
    "redact_secret",
    "parse_token_id",
    "parse_decimal",
    "parse_side",
    "parse_address",

    # Logging
    "ThreadLogger",
    "create_console_handler",
    "create_file_handler",
]
