import json
import sys
import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional, TextIO

from clob_bridge.utils.enums import AuthStatus, SignatureMode


@dataclass
class AuthStory:
    """Diagnostic record of one authentication attempt"""
    run_id: str
    signer_address: str
    funder_address: Optional[str]
    signature_type: str
    auth_status: AuthStatus = AuthStatus.PENDING
    balance_usdc: Optional[str] = None
    error_details: Optional[str] = None

    @classmethod
    def pending(cls, run_id: str, signer_address: str, mode: SignatureMode,
                funder_address: Optional[str]) -> "AuthStory":
        return cls(
            run_id=run_id,
            signer_address=signer_address,
            funder_address=funder_address,
            signature_type=mode.label,
        )

    def succeed(self, balance: Optional[str] = None):
        self.auth_status = AuthStatus.SUCCESS
        self.balance_usdc = balance

    def fail(self, error: Exception | str):
        self.auth_status = AuthStatus.FAILED
        self.error_details = str(error)

    def to_dict(self) -> Dict[str, Any]:
        story = {
            "run_id": self.run_id,
            "signer_address": self.signer_address,
            "funder_address": self.funder_address,
            "signature_type": self.signature_type,
            "auth_status": self.auth_status.value,
            "balance_usdc": self.balance_usdc,
        }
        if self.error_details is not None:
            story["error_details"] = self.error_details
        return story


@dataclass
class Response:
    """
    The single output unit. ``success`` is true iff ``error`` is absent;
    ``auth_story`` is only set for auth-related commands.
    """
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    auth_story: Optional[AuthStory] = None

    @classmethod
    def ok(cls, data: Any) -> "Response":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, message: str, data: Optional[Any] = None) -> "Response":
        return cls(success=False, data=data, error=message)

    @classmethod
    def from_auth_story(cls, story: AuthStory, data: Optional[Any] = None) -> "Response":
        success = story.auth_status is AuthStatus.SUCCESS
        return cls(
            success=success,
            data=data,
            error=None if success else story.auth_status.value,
            auth_story=story,
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"success": self.success}
        if self.data is not None:
            out["data"] = self.data
        if self.error is not None:
            out["error"] = self.error
        if self.auth_story is not None:
            out["auth_story"] = self.auth_story.to_dict()
        return out

    def to_line(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"), allow_nan=False)


def serialization_failure_line(error: Exception) -> str:
    return json.dumps(
        {"success": False, "error": f"JSON serialization failed: {error}"},
        separators=(",", ":"),
    )


class ResponseWriter:
    """Writes one response per line to the output stream and flushes immediately"""

    def __init__(self, logger, stream: Optional[TextIO] = None):
        self.logger = logger
        self.stream = stream or sys.stdout
        self._lock = threading.Lock()

    def emit(self, response: Response):
        try:
            line = response.to_line()
        except (TypeError, ValueError) as e:
            self.logger.error(f"Response serialization failed: {e}")
            line = serialization_failure_line(e)

        with self._lock:
            self.stream.write(line + "\n")
            self.stream.flush()
