from dataclasses import dataclass, field

from py_clob_client.signer import Signer

from clob_bridge.utils.errors import ConfigError


@dataclass(frozen=True)
class WalletIdentity:
    """
    Signing identity derived once from the configured private key.
    Shared read-only by every command for the lifetime of the process.
    """
    address: str
    chain_id: int
    private_key: str = field(repr=False)

    @classmethod
    def from_private_key(cls, private_key: str, chain_id: int) -> "WalletIdentity":
        try:
            signer = Signer(private_key, chain_id)
        except Exception as e:
            raise ConfigError(f"Failed to parse private key: {e}") from e
        return cls(address=signer.address(), chain_id=chain_id, private_key=private_key)
