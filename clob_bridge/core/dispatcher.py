import asyncio
from typing import Awaitable, Callable, Dict, Optional, Type

from clob_bridge.client.gateway import ExchangeGateway
from clob_bridge.core.orders import OrderFailed, OrderSubmitter
from clob_bridge.core.probe import AuthProbe
from clob_bridge.core.session import SessionBuilder, resolve_signature_mode
from clob_bridge.domain.command import (
    AuthCommand,
    BalanceCommand,
    BaseCommand,
    CancelCommand,
    ExitCommand,
    MarketsCommand,
    OrderCommand,
    ProbeCommand,
    parse_command,
)
from clob_bridge.domain.identity import WalletIdentity
from clob_bridge.domain.response import AuthStory, Response, ResponseWriter
from clob_bridge.utils.enums import SignatureMode
from clob_bridge.utils.errors import BridgeError

MARKETS_MESSAGE = "Markets retrieved successfully. Use Polymarket API directly for full market data."

Handler = Callable[[BaseCommand], Awaitable[Response]]


class CommandDispatcher:
    """
    Routes one input line to its handler and writes exactly one response.
    Blank lines are skipped without a response. No error escapes a handler.
    """

    def __init__(self, logger, gateway: ExchangeGateway, identity: WalletIdentity, writer: ResponseWriter,
                 run_id: str, default_signature_type: Optional[int] = None,
                 default_funder: Optional[str] = None):
        self.logger = logger
        self.gateway = gateway
        self.identity = identity
        self.writer = writer
        self.run_id = run_id
        self.default_signature_type = default_signature_type
        self.default_funder = default_funder

        self.builder = SessionBuilder(logger, gateway, identity)
        self.submitter = OrderSubmitter(logger, self.builder)
        self.exiting = False

        self._handlers: Dict[Type[BaseCommand], Handler] = {
            AuthCommand: self._handle_auth,
            ProbeCommand: self._handle_probe,
            BalanceCommand: self._handle_balance,
            OrderCommand: self._handle_order,
            CancelCommand: self._handle_cancel,
            MarketsCommand: self._handle_markets,
            ExitCommand: self._handle_exit,
        }

    async def dispatch(self, raw_line: str) -> bool:
        """
        Handle one line and emit its response.
        Returns False once an exit command has been handled.
        """
        response = await self.handle(raw_line)
        if response is not None:
            self.writer.emit(response)
        return not self.exiting

    async def handle(self, raw_line: str) -> Optional[Response]:
        line = raw_line.strip()
        if not line:
            return None

        try:
            command = parse_command(line)
        except BridgeError as e:
            self.logger.warning(f"Rejected input line: {e}")
            return Response.fail(str(e))

        handler = self._handlers[type(command)]
        try:
            return await handler(command)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.logger.exception(f"Unhandled error in '{command.cmd}' handler")
            return Response.fail(f"Command failed: {e}")

    ################
    ### Helpers ###
    ################

    def _resolve(self, signature_type: Optional[int], funder_address: Optional[str]) -> tuple[SignatureMode, Optional[str]]:
        if signature_type is not None and SignatureMode.from_value(signature_type) is None:
            self.logger.warning(f"Unrecognised signature_type {signature_type}, using default")
        mode = resolve_signature_mode(signature_type, self.default_signature_type)
        return mode, self._funder(funder_address)

    def _funder(self, funder_address: Optional[str]) -> Optional[str]:
        return funder_address if funder_address is not None else self.default_funder

    ################
    ### Handlers ###
    ################

    async def _handle_auth(self, command: AuthCommand) -> Response:
        mode, funder = self._resolve(command.signature_type, command.funder_address)
        self.logger.info(
            "Attempting authentication",
            extra={"signature_type": mode.label, "funder": funder},
        )
        story = AuthStory.pending(self.run_id, self.identity.address, mode, funder)

        try:
            session = await self.builder.build(mode, funder)
        except Exception as e:
            self.logger.error(f"Authentication failed: {e}")
            story.fail(e)
            return Response.from_auth_story(story)

        self.logger.info("Authentication successful")
        story.succeed()
        try:
            balance = await session.balance_and_allowance()
        except Exception as e:
            self.logger.warning(f"Failed to get balance after auth: {e}")
            return Response.from_auth_story(story, {"authenticated": True, "balance_error": str(e)})

        story.balance_usdc = balance.balance
        return Response.from_auth_story(story, {
            "authenticated": True,
            "balance": balance.balance,
            "allowances": balance.allowances,
        })

    async def _handle_probe(self, command: ProbeCommand) -> Response:
        self.logger.info("Running authentication probe (trying all signature types)")
        probe = AuthProbe(self.logger, self.builder, self.run_id)
        outcome = await probe.run(self._funder(command.funder_address))
        return outcome.to_response()

    async def _handle_balance(self, command: BalanceCommand) -> Response:
        mode, funder = self._resolve(command.signature_type, command.funder_address)
        try:
            session = await self.builder.build(mode, funder)
            balance = await session.balance_and_allowance()
        except Exception as e:
            self.logger.error(f"Failed to get balance: {e}")
            return Response.fail(f"Failed to get balance: {e}")
        return Response.ok({"balance": balance.balance, "allowances": balance.allowances})

    async def _handle_order(self, command: OrderCommand) -> Response:
        mode, funder = self._resolve(command.signature_type, command.funder_address)
        try:
            data = await self.submitter.submit(command, mode, funder)
        except OrderFailed as e:
            self.logger.error(f"Order failed: {e}")
            return Response.fail(f"Order failed: {e}")
        return Response.ok(data)

    async def _handle_cancel(self, command: CancelCommand) -> Response:
        mode, funder = self._resolve(command.signature_type, command.funder_address)
        self.logger.info("Cancelling order", extra={"order_id": command.order_id})
        try:
            session = await self.builder.build(mode, funder)
            await session.cancel(command.order_id)
        except Exception as e:
            self.logger.error(f"Cancel failed: {e}")
            return Response.fail(f"Cancel failed: {e}")
        return Response.ok({"cancelled": True, "order_id": command.order_id})

    async def _handle_markets(self, command: MarketsCommand) -> Response:
        try:
            markets = await self.gateway.list_markets()
        except Exception as e:
            self.logger.error(f"Failed to get markets: {e}")
            return Response.fail(f"Failed to get markets: {e}")
        # Market entries are not forwarded, only their count
        return Response.ok({"count": markets.count, "message": MARKETS_MESSAGE})

    async def _handle_exit(self, command: ExitCommand) -> Response:
        self.logger.info("Exit command received, shutting down")
        self.exiting = True
        return Response.ok({"status": "exiting"})
