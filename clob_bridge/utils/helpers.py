import secrets
import string
import time
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from eth_utils import is_hex_address, to_checksum_address

from clob_bridge.utils.enums import OrderSide
from clob_bridge.utils.errors import CommandValidationError, InvalidFunderAddress

U256_MAX = 2**256 - 1
# Significant digits in U256_MAX, per base
_U256_DIGITS = {10: len(str(U256_MAX)), 16: 64}

Numeric = Union[int, float, str, Decimal]


def generate_run_id() -> str:
    """Process-wide run identifier, e.g. ``run_1718000000000_9f3a01bc``"""
    millis = int(time.time() * 1000)
    return f"run_{millis}_{secrets.token_hex(4)}"


def redact_secret(secret: str) -> str:
    return f"[{len(secret)} chars, starts with {secret[:6]}...]"


def parse_token_id(text: str) -> int:
    """
    Parse an outcome token id as a 256-bit unsigned integer.
    Accepts decimal digits or a 0x-prefixed hex string.
    """
    raw = text.strip()
    is_hex = raw[:2].lower() == "0x"
    digits = raw[2:] if is_hex else raw
    alphabet = string.hexdigits if is_hex else string.digits
    base = 16 if is_hex else 10
    if not digits or not all(c in alphabet for c in digits):
        raise CommandValidationError("Invalid token_id - must be a valid U256")
    significant = digits.lstrip("0") or "0"
    if len(significant) > _U256_DIGITS[base]:
        raise CommandValidationError("Invalid token_id - must be a valid U256")

    value = int(significant, base)

    if value > U256_MAX:
        raise CommandValidationError("Invalid token_id - must be a valid U256")
    return value


def parse_decimal(value: Numeric, field: str) -> Decimal:
    """Parse a JSON number or numeric string into a finite Decimal"""
    if isinstance(value, bool):
        raise CommandValidationError(f"Invalid {field}")
    try:
        # str() first so floats keep their shortest repr (0.1 -> Decimal("0.1"))
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise CommandValidationError(f"Invalid {field}") from None
    if not result.is_finite():
        raise CommandValidationError(f"Invalid {field}")
    return result


def parse_side(side: Optional[str]) -> OrderSide:
    # Anything that is not "buy" sells
    if side is None or side.lower() == "buy":
        return OrderSide.BUY
    return OrderSide.SELL


def parse_address(text: str) -> str:
    """Validate a 20-byte hex address and return it checksummed"""
    raw = text.strip()
    if not is_hex_address(raw):
        raise InvalidFunderAddress(text)
    return to_checksum_address(raw)
