"""
Domain module for clob-bridge.

Wallet identity, the typed command set read from stdin and the response
records written to stdout.
"""

from .identity import WalletIdentity
from .command import (
    BaseCommand,
    SessionCommand,
    AuthCommand,
    ProbeCommand,
    BalanceCommand,
    OrderCommand,
    CancelCommand,
    MarketsCommand,
    ExitCommand,
    parse_command,
)
from .response import AuthStory, Response, ResponseWriter

__all__ = [
    # Identity
    "WalletIdentity",

    # Commands
    "BaseCommand",
    "SessionCommand",
    "AuthCommand",
    "ProbeCommand",
    "BalanceCommand",
    "OrderCommand",
    "CancelCommand",
    "MarketsCommand",
    "ExitCommand",
    "parse_command",

    # Responses
    "AuthStory",
    "Response",
    "ResponseWriter",
]
