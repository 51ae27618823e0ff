"""
Client module for clob-bridge.

This module provides the exchange gateway abstraction, its py-clob-client
implementation and the high-level BridgeClient that wires everything to stdio.
"""

from .gateway import (
    BalanceAllowance,
    ExchangeGateway,
    ExchangeSession,
    MarketList,
    OrderDescriptor,
    SignedOrder,
)
from .clob_exchange import ClobExchange, ClobSession
from .bridge_client import BridgeClient

__all__ = [
    # Gateway abstraction
    "BalanceAllowance",
    "ExchangeGateway",
    "ExchangeSession",
    "MarketList",
    "OrderDescriptor",
    "SignedOrder",

    # py-clob-client backed gateway
    "ClobExchange",
    "ClobSession",

    # Entry point
    "BridgeClient",
]
