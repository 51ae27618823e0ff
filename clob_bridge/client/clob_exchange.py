import asyncio
from decimal import Decimal
from typing import Any, Callable, Optional

from py_clob_client.client import ClobClient
from py_clob_client.clob_types import (
    AssetType,
    BalanceAllowanceParams,
    MarketOrderArgs,
    OrderArgs,
    OrderType,
)
from py_clob_client.order_builder.constants import BUY, SELL

from clob_bridge.client.gateway import (
    BalanceAllowance,
    ExchangeGateway,
    ExchangeSession,
    MarketList,
    OrderDescriptor,
    SignedOrder,
)
from clob_bridge.domain.identity import WalletIdentity
from clob_bridge.utils.enums import OrderKind, OrderSide, SignatureMode
from clob_bridge.utils.errors import AuthenticationRejected, CommandValidationError, ExchangeRequestError
from clob_bridge.utils.config import DEFAULT_CLOB_HOST

USDC_DECIMALS = 6

_SIDES = {OrderSide.BUY: BUY, OrderSide.SELL: SELL}

ClientFactory = Callable[..., ClobClient]


def _error_message(err: Exception) -> str:
    # PolyApiException carries the HTTP status and body
    error_msg = getattr(err, "error_msg", None)
    status = getattr(err, "status_code", None)
    if error_msg is not None:
        return f"{error_msg} (status {status})" if status else str(error_msg)
    return str(err) or type(err).__name__


async def _run(func: Callable[..., Any], *args, **kwargs) -> Any:
    """py-clob-client is blocking; keep it off the event loop"""
    return await asyncio.to_thread(func, *args, **kwargs)


class ClobSession(ExchangeSession):
    def __init__(self, logger, client: ClobClient, identity: WalletIdentity,
                 mode: SignatureMode, funder_address: Optional[str]):
        super().__init__(identity, mode, funder_address)
        self.logger = logger
        self.client = client

    async def _call(self, operation: str, func: Callable[..., Any], *args, **kwargs) -> Any:
        try:
            return await _run(func, *args, **kwargs)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.logger.debug(f"{operation} failed: {e!r}")
            raise ExchangeRequestError(_error_message(e)) from e

    async def balance_and_allowance(self) -> BalanceAllowance:
        params = BalanceAllowanceParams(asset_type=AssetType.COLLATERAL)
        raw = await self._call("get_balance_allowance", self.client.get_balance_allowance, params)
        if not isinstance(raw, dict):
            raise ExchangeRequestError(f"Unexpected balance response: {raw!r}")

        allowances = raw.get("allowances")
        if allowances is None and "allowance" in raw:
            allowances = {"allowance": raw["allowance"]}
        return BalanceAllowance(balance=str(raw.get("balance", "0")), allowances=allowances or {})

    async def build_limit_order(self, token_id: int, size: Decimal, price: Decimal,
                                side: OrderSide) -> OrderDescriptor:
        return OrderDescriptor(
            kind=OrderKind.LIMIT,
            token_id=token_id,
            side=side,
            size=size,
            price=price,
        )

    async def build_market_order(self, token_id: int, amount_usdc: Decimal, side: OrderSide,
                                 fill_or_kill: bool = True) -> OrderDescriptor:
        if amount_usdc <= 0:
            raise CommandValidationError(f"Invalid USDC amount {amount_usdc}: must be positive")
        if -amount_usdc.as_tuple().exponent > USDC_DECIMALS:
            raise CommandValidationError(
                f"Invalid USDC amount {amount_usdc}: at most {USDC_DECIMALS} decimal places"
            )
        return OrderDescriptor(
            kind=OrderKind.MARKET,
            token_id=token_id,
            side=side,
            amount_usdc=amount_usdc,
            fill_or_kill=fill_or_kill,
        )

    async def sign(self, descriptor: OrderDescriptor) -> SignedOrder:
        side = _SIDES[descriptor.side]
        if descriptor.kind is OrderKind.LIMIT:
            args = OrderArgs(
                token_id=str(descriptor.token_id),
                price=float(descriptor.price),
                size=float(descriptor.size),
                side=side,
            )
            payload = await self._call("create_order", self.client.create_order, args)
        else:
            args = MarketOrderArgs(
                token_id=str(descriptor.token_id),
                amount=float(descriptor.amount_usdc),
                side=side,
                order_type=OrderType.FOK if descriptor.fill_or_kill else OrderType.GTC,
            )
            payload = await self._call("create_market_order", self.client.create_market_order, args)
        return SignedOrder(descriptor=descriptor, payload=payload)

    async def submit(self, signed_order: SignedOrder) -> Any:
        descriptor = signed_order.descriptor
        if descriptor.kind is OrderKind.LIMIT:
            order_type = OrderType.GTC
        else:
            order_type = OrderType.FOK if descriptor.fill_or_kill else OrderType.GTC
        return await self._call("post_order", self.client.post_order, signed_order.payload, order_type)

    async def cancel(self, order_id: str) -> None:
        result = await self._call("cancel", self.client.cancel, order_id)
        not_canceled = result.get("not_canceled") if isinstance(result, dict) else None
        if not_canceled and order_id in not_canceled:
            raise ExchangeRequestError(str(not_canceled[order_id]))


class ClobExchange(ExchangeGateway):
    '''
    Exchange gateway backed by the Polymarket CLOB through py-clob-client
    '''
    def __init__(self, logger, host: str = DEFAULT_CLOB_HOST, client_factory: ClientFactory = ClobClient):
        self.logger = logger
        self.host = host
        self.client_factory = client_factory

    async def authenticate(self, identity: WalletIdentity, mode: SignatureMode,
                           funder_address: Optional[str]) -> ClobSession:
        try:
            client = self.client_factory(
                self.host,
                key=identity.private_key,
                chain_id=identity.chain_id,
                signature_type=mode.value,
                funder=funder_address,
            )
            creds = await _run(client.create_or_derive_api_creds)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise AuthenticationRejected(_error_message(e)) from e

        if creds is None:
            raise AuthenticationRejected("exchange returned no API credentials")
        client.set_api_creds(creds)
        self.logger.debug(f"API credentials derived for {identity.address} ({mode.label})")
        return ClobSession(self.logger, client, identity, mode, funder_address)

    async def list_markets(self) -> MarketList:
        try:
            client = self.client_factory(self.host)
            raw = await _run(client.get_markets)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise ExchangeRequestError(_error_message(e)) from e

        if not isinstance(raw, dict):
            raise ExchangeRequestError(f"Unexpected markets response: {raw!r}")
        return MarketList(markets=list(raw.get("data") or []), next_cursor=raw.get("next_cursor"))
