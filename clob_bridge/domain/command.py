from __future__ import annotations
import json
from typing import Any, Dict, Optional, Type, Union
from pydantic import BaseModel, ConfigDict, StrictInt, StrictStr, ValidationError, field_validator

from clob_bridge.utils.errors import CommandParseError, CommandValidationError, UnknownCommandError

DEFAULT_SIDE = "buy"
DEFAULT_AMOUNT = 10.0

Numeric = Union[StrictInt, float, StrictStr]


class BaseCommand(BaseModel):
    """Fields shared by every command; unknown fields are ignored"""
    model_config = ConfigDict(extra="ignore", frozen=True)

    cmd: StrictStr


class SessionCommand(BaseCommand):
    """A command that builds an authenticated session"""
    signature_type: Optional[StrictInt] = None
    funder_address: Optional[StrictStr] = None


class AuthCommand(SessionCommand):
    pass


class ProbeCommand(BaseCommand):
    funder_address: Optional[StrictStr] = None


class BalanceCommand(SessionCommand):
    pass


class OrderCommand(SessionCommand):
    token_id: StrictStr
    side: StrictStr = DEFAULT_SIDE
    amount: Numeric = DEFAULT_AMOUNT
    price: Optional[Numeric] = None

    @field_validator("amount", "price", mode="before")
    @classmethod
    def _reject_bool(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError("expected a number")
        return value

    @property
    def is_limit(self) -> bool:
        return self.price is not None


class CancelCommand(SessionCommand):
    order_id: StrictStr


class MarketsCommand(BaseCommand):
    pass


class ExitCommand(BaseCommand):
    pass


Command = Union[
    AuthCommand,
    ProbeCommand,
    BalanceCommand,
    OrderCommand,
    CancelCommand,
    MarketsCommand,
    ExitCommand,
]

COMMAND_TYPES: Dict[str, Type[BaseCommand]] = {
    "auth": AuthCommand,
    "probe": ProbeCommand,
    "balance": BalanceCommand,
    "order": OrderCommand,
    "cancel": CancelCommand,
    "markets": MarketsCommand,
    "exit": ExitCommand,
    "quit": ExitCommand,
}

# Required fields reported by name rather than as a schema error
_REQUIRED_FIELDS: Dict[Type[BaseCommand], str] = {
    OrderCommand: "token_id",
    CancelCommand: "order_id",
}


def _describe(err: ValidationError) -> str:
    first = err.errors()[0]
    location = ".".join(str(part) for part in first["loc"]) or "input"
    return f"{location}: {first['msg']}"


def parse_command(line: str) -> Command:
    """
    Parse one input line into a command variant.

    Raises
    ------
    CommandParseError
        The line is not a JSON object with a string ``cmd`` or a field has the wrong type.
    UnknownCommandError
        ``cmd`` names no known command.
    CommandValidationError
        A field the command requires is absent.
    """
    try:
        payload = json.loads(line)
    except (ValueError, RecursionError) as e:
        raise CommandParseError(f"Invalid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise CommandParseError(f"Invalid JSON: expected an object, got {type(payload).__name__}")
    if "cmd" not in payload:
        raise CommandParseError("Invalid JSON: missing field `cmd`")
    if not isinstance(payload["cmd"], str):
        raise CommandParseError("Invalid JSON: field `cmd` must be a string")

    name = payload["cmd"]
    command_cls = COMMAND_TYPES.get(name)
    if command_cls is None:
        raise UnknownCommandError(name)

    required = _REQUIRED_FIELDS.get(command_cls)
    if required and payload.get(required) is None:
        raise CommandValidationError(f"Missing {required}")

    # Explicit nulls mean "absent" so defaults apply
    fields = {key: value for key, value in payload.items() if value is not None}
    try:
        return command_cls.model_validate(fields)
    except ValidationError as e:
        raise CommandParseError(f"Invalid JSON: {_describe(e)}") from e
