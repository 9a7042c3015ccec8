"""
Validated launch configuration.

Every value the pipeline consumes comes from a MintConfig, which is checked as
a whole before the first network call.
"""

from dataclasses import dataclass, field

from solders.keypair import Keypair
from solders.pubkey import Pubkey

from mint_launcher.core.errors import ConfigurationError
from mint_launcher.core.pubkeys import MAX_U64
from mint_launcher.core.wallet import Wallet
from mint_launcher.token2022.extensions import (
    SUPPORTED_MINT_EXTENSIONS,
    ExtensionType,
    normalize_extensions,
)

# Per-field byte ceilings. The whole creation transaction, metadata strings
# included, must still fit one 1232-byte packet; the assembler checks the total.
MAX_NAME_BYTES = 32
MAX_SYMBOL_BYTES = 10
MAX_URI_BYTES = 200
MAX_FIELD_KEY_BYTES = 32
MAX_FIELD_VALUE_BYTES = 200

SUPPORTED_CLUSTERS = ("mainnet-beta", "devnet", "testnet", "localnet")


@dataclass(frozen=True)
class MetadataFields:
    """Metadata content to write at creation time."""

    name: str
    symbol: str
    uri: str = ""
    additional: tuple[tuple[str, str], ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class MintConfig:
    """Everything needed to create, verify and fund one mint."""

    payer: Wallet
    decimals: int
    metadata: MetadataFields
    mint_authority: Wallet | None = None
    update_authority: Wallet | None = None
    freeze_authority: Pubkey | None = None
    close_authority: Pubkey | None = None
    permanent_delegate: Pubkey | None = None
    extensions: tuple[ExtensionType, ...] = (ExtensionType.METADATA_POINTER,)
    mint_keypair: Keypair | None = None
    holder_owner: Pubkey | None = None
    issue_amount: int = 0
    cluster: str = "devnet"
    name: str = "mint"

    @property
    def mint_authority_wallet(self) -> Wallet:
        return self.mint_authority or self.payer

    @property
    def update_authority_wallet(self) -> Wallet:
        return self.update_authority or self.payer

    @property
    def resolved_holder_owner(self) -> Pubkey:
        return self.holder_owner or self.payer.pubkey

    @property
    def resolved_extensions(self) -> tuple[ExtensionType, ...]:
        """Configured extensions plus the metadata pointer, deduplicated."""
        return normalize_extensions((*self.extensions, ExtensionType.METADATA_POINTER))

    def signing_keypairs(self) -> list[Keypair]:
        """Every keypair the configuration can sign with."""
        return [
            self.payer.keypair,
            self.mint_authority_wallet.keypair,
            self.update_authority_wallet.keypair,
        ]

    def validate(self) -> None:
        """Check every value before the pipeline starts.

        Raises:
            ConfigurationError: On the first invalid value
        """
        if not isinstance(self.decimals, int) or isinstance(self.decimals, bool):
            raise ConfigurationError("mint.decimals must be an integer")
        if not 0 <= self.decimals <= 255:
            raise ConfigurationError("mint.decimals must be between 0 and 255")

        if not isinstance(self.issue_amount, int) or not 0 <= self.issue_amount <= MAX_U64:
            raise ConfigurationError("issuance.amount must be an integer between 0 and 2^64-1")

        if self.cluster not in SUPPORTED_CLUSTERS:
            raise ConfigurationError(f"cluster must be one of {list(SUPPORTED_CLUSTERS)}")

        for extension in self.resolved_extensions:
            if extension not in SUPPORTED_MINT_EXTENSIONS:
                raise ConfigurationError(
                    f"Extension {extension.config_name} is not supported; "
                    f"choose from {sorted(e.config_name for e in SUPPORTED_MINT_EXTENSIONS)}"
                )
        if ExtensionType.PERMANENT_DELEGATE in self.resolved_extensions and not self.permanent_delegate:
            raise ConfigurationError(
                "authorities.permanent_delegate is required for the permanent_delegate extension"
            )

        self._validate_metadata()

    def _validate_metadata(self) -> None:
        meta = self.metadata
        limits = [
            ("metadata.name", meta.name, MAX_NAME_BYTES),
            ("metadata.symbol", meta.symbol, MAX_SYMBOL_BYTES),
            ("metadata.uri", meta.uri, MAX_URI_BYTES),
        ]
        for key, value in meta.additional:
            limits.append((f"metadata.additional[{key}] key", key, MAX_FIELD_KEY_BYTES))
            limits.append((f"metadata.additional[{key}] value", value, MAX_FIELD_VALUE_BYTES))

        for label, value, limit in limits:
            if not isinstance(value, str):
                raise ConfigurationError(f"{label} must be a string")
            if len(value.encode("utf-8")) > limit:
                raise ConfigurationError(f"{label} exceeds {limit} bytes")

        if not meta.name:
            raise ConfigurationError("metadata.name must not be empty")
        if not meta.symbol:
            raise ConfigurationError("metadata.symbol must not be empty")

        keys = [key for key, _ in meta.additional]
        if len(keys) != len(set(keys)):
            raise ConfigurationError("metadata.additional keys must be unique")
        for key in keys:
            if not key:
                raise ConfigurationError("metadata.additional keys must not be empty")
            if key in ("name", "symbol", "uri"):
                raise ConfigurationError(
                    f"metadata.additional key '{key}' collides with a builtin field"
                )
