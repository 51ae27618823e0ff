import asyncio
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional

from clob_bridge.core.session import SessionBuilder
from clob_bridge.domain.command import OrderCommand
from clob_bridge.utils.enums import OrderKind, OrderSide, SignatureMode
from clob_bridge.utils.helpers import parse_decimal, parse_side, parse_token_id


class OrderFailed(Exception):
    """Any failure in the order pipeline; nothing was submitted"""
    pass


@dataclass(frozen=True)
class OrderRequest:
    """Validated order fields"""
    token_id: int
    side: OrderSide
    amount: Decimal
    price: Optional[Decimal] = None

    @property
    def kind(self) -> OrderKind:
        return OrderKind.LIMIT if self.price is not None else OrderKind.MARKET

    @classmethod
    def from_command(cls, command: OrderCommand) -> "OrderRequest":
        return cls(
            token_id=parse_token_id(command.token_id),
            side=parse_side(command.side),
            amount=parse_decimal(command.amount, "amount"),
            price=parse_decimal(command.price, "price") if command.price is not None else None,
        )


class OrderSubmitter:
    """
    Validate → build session → construct → sign → submit.
    Either the whole pipeline succeeds or nothing is submitted.
    """

    def __init__(self, logger, builder: SessionBuilder):
        self.logger = logger
        self.builder = builder

    async def submit(self, command: OrderCommand, mode: SignatureMode,
                     funder: Optional[str] = None) -> Dict[str, Any]:
        try:
            return await self._submit(command, mode, funder)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise OrderFailed(str(e)) from e

    async def _submit(self, command: OrderCommand, mode: SignatureMode,
                      funder: Optional[str]) -> Dict[str, Any]:
        # Validated before any network call
        request = OrderRequest.from_command(command)

        self.logger.info(
            "Placing order",
            extra={
                "token_id": str(request.token_id),
                "side": request.side.value,
                "amount": str(request.amount),
                "price": str(request.price) if request.price is not None else None,
                "signature_type": mode.label,
            },
        )

        session = await self.builder.build(mode, funder)
        if request.kind is OrderKind.LIMIT:
            descriptor = await session.build_limit_order(
                request.token_id, request.amount, request.price, request.side
            )
        else:
            descriptor = await session.build_market_order(
                request.token_id, request.amount, request.side, fill_or_kill=True
            )

        signed = await session.sign(descriptor)
        result = await session.submit(signed)
        self.logger.info(f"{request.kind.value.capitalize()} order placed successfully")
        return {"order_type": request.kind.value, "response": result}
