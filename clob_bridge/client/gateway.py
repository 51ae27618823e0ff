from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

from clob_bridge.domain.identity import WalletIdentity
from clob_bridge.utils.enums import OrderKind, OrderSide, SignatureMode


@dataclass
class BalanceAllowance:
    """Collateral balance and per-spender allowances, as reported by the exchange"""
    balance: str
    allowances: Dict[str, Any] = field(default_factory=dict)


@dataclass
class OrderDescriptor:
    """Unsigned order built from command fields"""
    kind: OrderKind
    token_id: int
    side: OrderSide
    # Limit orders carry size in shares and a price; market orders a USDC amount
    size: Optional[Decimal] = None
    price: Optional[Decimal] = None
    amount_usdc: Optional[Decimal] = None
    fill_or_kill: bool = False


@dataclass
class SignedOrder:
    descriptor: OrderDescriptor
    payload: Any


@dataclass
class MarketList:
    markets: List[Any]
    next_cursor: Optional[str] = None

    @property
    def count(self) -> int:
        return len(self.markets)


class ExchangeSession(ABC):
    '''
    Authenticated handle to the exchange for one identity and signature mode.
    Built fresh per command and discarded afterwards.
    '''
    def __init__(self, identity: WalletIdentity, mode: SignatureMode, funder_address: Optional[str]):
        self.identity = identity
        self.mode = mode
        self.funder_address = funder_address

    @abstractmethod
    async def balance_and_allowance(self) -> BalanceAllowance:
        pass

    @abstractmethod
    async def build_limit_order(self, token_id: int, size: Decimal, price: Decimal,
                                side: OrderSide) -> OrderDescriptor:
        pass

    @abstractmethod
    async def build_market_order(self, token_id: int, amount_usdc: Decimal, side: OrderSide,
                                 fill_or_kill: bool = True) -> OrderDescriptor:
        pass

    @abstractmethod
    async def sign(self, descriptor: OrderDescriptor) -> SignedOrder:
        pass

    @abstractmethod
    async def submit(self, signed_order: SignedOrder) -> Any:
        '''
        Post a signed order
        ---
        OUTPUT
        - opaque submission result returned by the exchange
        '''
        pass

    @abstractmethod
    async def cancel(self, order_id: str) -> None:
        pass


class ExchangeGateway(ABC):
    '''
    Entry point to the remote exchange
    '''
    @abstractmethod
    async def authenticate(self, identity: WalletIdentity, mode: SignatureMode,
                           funder_address: Optional[str]) -> ExchangeSession:
        '''
        Derive API credentials for the identity under the given signature mode.
        One network round trip; no retries.
        '''
        pass

    @abstractmethod
    async def list_markets(self) -> MarketList:
        '''
        Unauthenticated market listing
        '''
        pass
