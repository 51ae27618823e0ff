"""
Core components for clob-bridge.

Session construction, the authentication probe, the order pipeline, command
dispatch and the stdin read loop.
"""

from .session import SessionBuilder, resolve_signature_mode, DEFAULT_SIGNATURE_MODE
from .probe import AuthProbe, ProbeAttempt, ProbeOutcome
from .orders import OrderFailed, OrderRequest, OrderSubmitter
from .dispatcher import CommandDispatcher
from .loop import LineProtocolLoop

__all__ = [
    'SessionBuilder',
    'resolve_signature_mode',
    'DEFAULT_SIGNATURE_MODE',
    'AuthProbe',
    'ProbeAttempt',
    'ProbeOutcome',
    'OrderFailed',
    'OrderRequest',
    'OrderSubmitter',
    'CommandDispatcher',
    'LineProtocolLoop',
]
