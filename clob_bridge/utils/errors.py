"""
Error taxonomy for the bridge.

Every error raised while handling a command is caught at the handler boundary and
turned into an error response; only ``ConfigError`` is allowed to stop the process.
"""


class BridgeError(Exception):
    """Base class for all bridge errors"""
    pass


class ConfigError(BridgeError):
    """Startup configuration is missing or malformed"""
    pass


class BridgeClientError(BridgeError):
    """Custom exception for BridgeClient errors"""
    pass


class CommandParseError(BridgeError):
    """Input line is not a well-formed command"""
    pass


class CommandValidationError(BridgeError):
    """A command field is missing or malformed"""
    pass


class UnknownCommandError(BridgeError):
    def __init__(self, cmd: str):
        super().__init__(f"Unknown command: {cmd}")
        self.cmd = cmd


class AuthError(BridgeError):
    pass


class InvalidFunderAddress(AuthError):
    def __init__(self, raw: str):
        super().__init__(f"Invalid funder address format: {raw}")
        self.raw = raw


class AuthenticationRejected(AuthError):
    def __init__(self, message: str):
        super().__init__(f"Authentication rejected: {message}")
        self.reason = message


class ExchangeRequestError(BridgeError):
    """Transport or remote failure of an exchange call"""
    pass
