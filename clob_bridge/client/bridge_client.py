import logging
from typing import Any, BinaryIO, Dict, Mapping, Optional, TextIO

from clob_bridge.client.clob_exchange import ClobExchange
from clob_bridge.client.gateway import ExchangeGateway
from clob_bridge.core.dispatcher import CommandDispatcher
from clob_bridge.core.loop import LineProtocolLoop
from clob_bridge.core.probe import AuthProbe, ProbeOutcome
from clob_bridge.domain.identity import WalletIdentity
from clob_bridge.domain.response import ResponseWriter
from clob_bridge.utils.config import BridgeConfig, load_config
from clob_bridge.utils.errors import BridgeClientError, ConfigError
from clob_bridge.utils.helpers import generate_run_id, redact_secret
from clob_bridge.utils.logger import (
    RunIdFilter,
    ThreadLogger,
    create_console_handler,
    create_file_handler,
)


class BridgeClient:
    """
    Main entry point for the bridge.
    Loads configuration, derives the wallet identity and wires the dispatcher
    to standard input/output.
    """

    def __init__(self,
                config_path: Optional[str] = None,
                overrides: Optional[Dict[str, Any]] = None,
                env: Optional[Mapping[str, str]] = None,
                gateway: Optional[ExchangeGateway] = None,
                stdin: Optional[BinaryIO] = None,
                stdout: Optional[TextIO] = None,
                log_stream: Optional[TextIO] = None,
                handle_signals: bool = True):
        """
        Initialize the bridge client.

        Args:
            config_path: Optional YAML file with non-secret settings
            overrides: Config values from the command line, applied last
            env: Environment mapping (defaults to os.environ plus .env)
            gateway: Exchange gateway (defaults to the py-clob-client backed one)
            stdin: Binary input stream for commands
            stdout: Text output stream for responses
            log_stream: Stream for the console log handler (defaults to stderr)
            handle_signals: Register SIGUSR1/SIGUSR2 verbosity handlers
        """
        self.run_id = generate_run_id()

        try:
            self.thread_logger = ThreadLogger(
                name="clob-bridge",
                level=(overrides or {}).get("log_level") or "INFO",
                handle_signals=handle_signals,
            )
            self.logger = self.thread_logger.get_logger()
            self.logger.addFilter(RunIdFilter(self.run_id))
        except Exception as e:
            raise BridgeClientError(f"Failed to initialize logger: {e}")

        self._running = False
        self._stopped = False

        try:
            self.config: BridgeConfig = load_config(
                self.logger, config_path=config_path, env=env, overrides=overrides
            )
        except ConfigError as e:
            self.thread_logger.shutdown()
            raise BridgeClientError(f"Failed to load configuration: {e}") from e

        self._init_log_handlers(log_stream)
        self.logger.info("Polymarket bridge starting")

        private_key = self.config.private_key.get_secret_value()
        self.logger.debug(f"Private key loaded {redact_secret(private_key)}")
        try:
            self.identity = WalletIdentity.from_private_key(private_key, self.config.chain_id)
        except ConfigError as e:
            self.logger.error(f"Private key {redact_secret(private_key)} rejected")
            self.thread_logger.shutdown()
            raise BridgeClientError(str(e)) from e
        self.logger.info("Signer initialized", extra={"signer_address": self.identity.address})

        self.gateway = gateway or ClobExchange(self.logger, host=self.config.host)
        self.writer = ResponseWriter(self.logger, stdout)
        self.dispatcher = CommandDispatcher(
            self.logger,
            self.gateway,
            self.identity,
            self.writer,
            self.run_id,
            default_signature_type=self.config.signature_type,
            default_funder=self.config.funder_address,
        )
        self.loop = LineProtocolLoop(self.logger, self.dispatcher, stdin)

    def _init_log_handlers(self, log_stream: Optional[TextIO]):
        level = getattr(logging, self.config.log_level)
        self.thread_logger.level = level
        self.add_log_handler(
            create_console_handler(level=level, fmt=self.config.log_format.value, stream=log_stream)
        )
        if self.config.log_file:
            self.add_log_handler(create_file_handler(log_file=self.config.log_file))

    def add_log_handler(self, handler: logging.Handler):
        self.thread_logger.add_handler(handler)

    def remove_log_handler(self, handler: logging.Handler):
        self.thread_logger.remove_handler(handler)

    async def serve(self):
        """Run the line protocol until exit or end of input."""
        if self._running:
            self.logger.warning("Bridge already running")
            return

        self._running = True
        try:
            await self.loop.run()
        finally:
            self._running = False

    async def probe(self, funder_address: Optional[str] = None) -> ProbeOutcome:
        """Run the authentication probe once, outside the line protocol."""
        funder = funder_address if funder_address is not None else self.config.funder_address
        probe = AuthProbe(self.logger, self.dispatcher.builder, self.run_id)
        return await probe.run(funder)

    def stop(self):
        if self._stopped:
            return
        self._stopped = True
        self.logger.info("Polymarket bridge shutting down")
        self.thread_logger.shutdown()

    @property
    def is_running(self) -> bool:
        return self._running

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.stop()
