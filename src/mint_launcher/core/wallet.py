"""
Wallet management for Solana transactions.
"""

import base58
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from mint_launcher.core.errors import ConfigurationError


class Wallet:
    """Manages a Solana keypair used as payer or authority."""

    def __init__(self, private_key: str):
        """Initialize wallet from private key.

        Args:
            private_key: Base58 encoded private key

        Raises:
            ConfigurationError: If the key cannot be decoded
        """
        self._keypair = self._load_keypair(private_key)

    @classmethod
    def from_keypair(cls, keypair: Keypair) -> "Wallet":
        """Wrap an existing keypair."""
        wallet = cls.__new__(cls)
        wallet._keypair = keypair
        return wallet

    @classmethod
    def generate(cls) -> "Wallet":
        """Create a wallet around a freshly generated keypair."""
        return cls.from_keypair(Keypair())

    @property
    def pubkey(self) -> Pubkey:
        """Get the public key of the wallet."""
        return self._keypair.pubkey()

    @property
    def keypair(self) -> Keypair:
        """Get the keypair for signing transactions."""
        return self._keypair

    def secret_base58(self) -> str:
        """Return the full 64-byte secret key encoded as base58."""
        return base58.b58encode(bytes(self._keypair)).decode()

    def __repr__(self) -> str:
        return f"Wallet({self.pubkey})"

    @staticmethod
    def _load_keypair(private_key: str) -> Keypair:
        """Load keypair from private key.

        Args:
            private_key: Base58 encoded private key

        Returns:
            Solana keypair
        """
        if not private_key:
            raise ConfigurationError("Private key is missing")
        try:
            private_key_bytes = base58.b58decode(private_key)
            return Keypair.from_bytes(private_key_bytes)
        except ValueError as e:
            raise ConfigurationError(f"Invalid private key: {e!s}") from e
