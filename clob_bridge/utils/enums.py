from enum import Enum
from typing import Optional


class SignatureMode(Enum):
    """Wallet-authorization scheme used to sign orders"""
    EOA = 0
    PROXY = 1
    GNOSIS_SAFE = 2

    @property
    def label(self) -> str:
        return _SIGNATURE_LABELS[self]

    @classmethod
    def from_value(cls, value: Optional[int]) -> Optional["SignatureMode"]:
        for mode in cls:
            if mode.value == value:
                return mode
        return None


_SIGNATURE_LABELS = {
    SignatureMode.EOA: "EOA",
    SignatureMode.PROXY: "Proxy",
    SignatureMode.GNOSIS_SAFE: "GnosisSafe",
}

# Order in which the auth probe tries each mode
PROBE_ORDER = (SignatureMode.EOA, SignatureMode.GNOSIS_SAFE, SignatureMode.PROXY)


class OrderSide(Enum):
    BUY = "BUY"
    SELL = "SELL"


class OrderKind(Enum):
    LIMIT = "limit"
    MARKET = "market"


class AuthStatus(Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class LogFormat(Enum):
    JSON = "json"
    TEXT = "text"
