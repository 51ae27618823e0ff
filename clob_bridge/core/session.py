import asyncio
from typing import Optional

from clob_bridge.client.gateway import ExchangeGateway, ExchangeSession
from clob_bridge.domain.identity import WalletIdentity
from clob_bridge.utils.enums import SignatureMode
from clob_bridge.utils.errors import AuthError, AuthenticationRejected
from clob_bridge.utils.helpers import parse_address

# Browser-wallet funded accounts are the common case
DEFAULT_SIGNATURE_MODE = SignatureMode.GNOSIS_SAFE


def resolve_signature_mode(explicit: Optional[int] = None, env_default: Optional[int] = None) -> SignatureMode:
    """
    Pick the signature mode: explicit command value, then the configured default,
    then GnosisSafe. Unrecognised integers also resolve to GnosisSafe.
    """
    value = explicit if explicit is not None else env_default
    return SignatureMode.from_value(value) or DEFAULT_SIGNATURE_MODE


class SessionBuilder:
    """
    Produces an authenticated exchange session for one command.
    No caching: different commands may ask for different modes or funders.
    """

    def __init__(self, logger, gateway: ExchangeGateway, identity: WalletIdentity):
        self.logger = logger
        self.gateway = gateway
        self.identity = identity

    async def build(self, mode: SignatureMode, funder_text: Optional[str] = None) -> ExchangeSession:
        """
        Raises
        ------
        InvalidFunderAddress
            ``funder_text`` is not a 20-byte hex address (checked before any network call).
        AuthenticationRejected
            The exchange refused to issue credentials.
        """
        funder = parse_address(funder_text) if funder_text is not None else None

        try:
            return await self.gateway.authenticate(self.identity, mode, funder)
        except asyncio.CancelledError:
            raise
        except AuthError:
            raise
        except Exception as e:
            raise AuthenticationRejected(str(e) or type(e).__name__) from e
