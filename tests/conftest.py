import io
import json
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

import pytest

from clob_bridge.client.gateway import (
    BalanceAllowance,
    ExchangeGateway,
    ExchangeSession,
    MarketList,
    OrderDescriptor,
    SignedOrder,
)
from clob_bridge.core.dispatcher import CommandDispatcher
from clob_bridge.domain.identity import WalletIdentity
from clob_bridge.domain.response import ResponseWriter
from clob_bridge.utils.enums import OrderKind, OrderSide, SignatureMode
from clob_bridge.utils.errors import AuthenticationRejected, ExchangeRequestError

HARDHAT_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
HARDHAT_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
FUNDER = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
RUN_ID = "run_1718000000000_deadbeef"


class FakeSession(ExchangeSession):
    def __init__(self, gateway: "FakeGateway", identity, mode, funder_address):
        super().__init__(identity, mode, funder_address)
        self.gateway = gateway

    async def balance_and_allowance(self) -> BalanceAllowance:
        self.gateway.calls.append(("balance", self.mode))
        if self.gateway.balance_error:
            raise ExchangeRequestError(self.gateway.balance_error)
        return BalanceAllowance(balance=self.gateway.balance, allowances=dict(self.gateway.allowances))

    async def build_limit_order(self, token_id: int, size: Decimal, price: Decimal,
                                side: OrderSide) -> OrderDescriptor:
        self.gateway.calls.append(("build_limit", token_id, size, price, side))
        return OrderDescriptor(kind=OrderKind.LIMIT, token_id=token_id, side=side, size=size, price=price)

    async def build_market_order(self, token_id: int, amount_usdc: Decimal, side: OrderSide,
                                 fill_or_kill: bool = True) -> OrderDescriptor:
        self.gateway.calls.append(("build_market", token_id, amount_usdc, side, fill_or_kill))
        return OrderDescriptor(kind=OrderKind.MARKET, token_id=token_id, side=side,
                               amount_usdc=amount_usdc, fill_or_kill=fill_or_kill)

    async def sign(self, descriptor: OrderDescriptor) -> SignedOrder:
        self.gateway.calls.append(("sign", descriptor.kind))
        if self.gateway.sign_error:
            raise ExchangeRequestError(self.gateway.sign_error)
        return SignedOrder(descriptor=descriptor, payload={"signed": True})

    async def submit(self, signed_order: SignedOrder) -> Any:
        self.gateway.calls.append(("submit", signed_order.descriptor.kind))
        if self.gateway.submit_error:
            raise ExchangeRequestError(self.gateway.submit_error)
        return dict(self.gateway.submit_result)

    async def cancel(self, order_id: str) -> None:
        self.gateway.calls.append(("cancel", order_id))
        if self.gateway.cancel_error:
            raise ExchangeRequestError(self.gateway.cancel_error)


class FakeGateway(ExchangeGateway):
    """
    In-memory exchange. ``accepted_modes`` lists the signature modes for
    which authentication succeeds; every call is recorded in ``calls``.
    """

    def __init__(self, accepted_modes=(SignatureMode.GNOSIS_SAFE,)):
        self.accepted_modes = set(accepted_modes)
        self.calls: List[tuple] = []
        self.auth_calls: List[tuple] = []
        self.balance = "1000000"
        self.allowances: Dict[str, str] = {"0xExchange": "115792089237316195423570985008687907853269984665640564039457584007913129639935"}
        self.balance_error: Optional[str] = None
        self.sign_error: Optional[str] = None
        self.submit_error: Optional[str] = None
        self.submit_result: Dict[str, Any] = {"orderID": "0xabc", "status": "live"}
        self.cancel_error: Optional[str] = None
        self.markets: List[Any] = [{"condition_id": "0x1"}, {"condition_id": "0x2"}]
        self.markets_error: Optional[str] = None

    async def authenticate(self, identity, mode, funder_address):
        self.auth_calls.append((mode, funder_address))
        if mode not in self.accepted_modes:
            raise AuthenticationRejected(f"Could not derive api key ({mode.label})")
        return FakeSession(self, identity, mode, funder_address)

    async def list_markets(self) -> MarketList:
        if self.markets_error:
            raise ExchangeRequestError(self.markets_error)
        return MarketList(markets=list(self.markets), next_cursor="LTE=")


@pytest.fixture
def logger():
    return logging.getLogger("clob-bridge-tests")


@pytest.fixture
def identity():
    return WalletIdentity(address=HARDHAT_ADDRESS, chain_id=137, private_key=HARDHAT_KEY)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def output():
    return io.StringIO()


@pytest.fixture
def writer(logger, output):
    return ResponseWriter(logger, output)


@pytest.fixture
def dispatcher(logger, gateway, identity, writer):
    return CommandDispatcher(logger, gateway, identity, writer, RUN_ID)


def read_responses(output: io.StringIO) -> List[dict]:
    return [json.loads(line) for line in output.getvalue().splitlines()]
