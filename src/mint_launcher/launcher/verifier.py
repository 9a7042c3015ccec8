"""
Post-creation verification of a mint, its metadata pointer and its metadata.
"""

from dataclasses import dataclass

from solders.pubkey import Pubkey

from mint_launcher.core.errors import AccountNotFoundError, LayoutError, VerificationError
from mint_launcher.core.pubkeys import SystemAddresses
from mint_launcher.interfaces.ledger import LedgerClient
from mint_launcher.token2022.metadata import TokenMetadata
from mint_launcher.token2022.state import (
    MetadataPointerState,
    MintState,
    decode_mint,
    get_token_metadata,
)
from mint_launcher.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ExpectedMint:
    """What the creation transaction was asked to write."""

    address: Pubkey
    decimals: int
    mint_authority: Pubkey
    freeze_authority: Pubkey | None
    metadata: TokenMetadata


@dataclass(frozen=True)
class VerifiedMint:
    """State read back after creation; every field matched the request."""

    mint: MintState
    metadata_pointer: MetadataPointerState
    metadata: TokenMetadata


async def fetch_mint(client: LedgerClient, address: Pubkey) -> MintState:
    """Fetch and decode a Token-2022 mint account.

    Raises:
        AccountNotFoundError: If the account does not exist
        LayoutError: If it is not a Token-2022 mint
    """
    account = await client.get_account_info(address)
    if account is None:
        raise AccountNotFoundError(f"Mint {address} not found")
    if account.owner != SystemAddresses.TOKEN_2022_PROGRAM:
        raise LayoutError(f"Account {address} is owned by {account.owner}, not Token-2022")
    return decode_mint(address, account.data)


async def fetch_token_metadata(client: LedgerClient, address: Pubkey) -> TokenMetadata:
    """Fetch the metadata record stored in the account at `address`.

    Raises:
        AccountNotFoundError: If the account or its metadata entry is missing
    """
    holder = await fetch_mint(client, address)
    metadata = get_token_metadata(holder)
    if metadata is None:
        raise AccountNotFoundError(f"No token metadata stored in {address}")
    return metadata


def _compare(
    mismatches: dict[str, tuple[object, object]], name: str, expected: object, actual: object
) -> None:
    if expected != actual:
        mismatches[name] = (expected, actual)


class PostCreationVerifier:
    """Re-reads a freshly created mint and checks it against the request."""

    def __init__(self, client: LedgerClient):
        self.client = client

    async def verify(self, expected: ExpectedMint) -> VerifiedMint:
        """Run the three verification reads.

        Returns:
            Verified on-ledger state

        Raises:
            VerificationError: If any field differs from what was written
        """
        mismatches: dict[str, tuple[object, object]] = {}

        # (a) mint state
        mint = await fetch_mint(self.client, expected.address)
        _compare(mismatches, "is_initialized", True, mint.is_initialized)
        _compare(mismatches, "decimals", expected.decimals, mint.decimals)
        _compare(mismatches, "mint_authority", expected.mint_authority, mint.mint_authority)
        _compare(
            mismatches, "freeze_authority", expected.freeze_authority, mint.freeze_authority
        )

        # (b) metadata pointer, decoded from the mint's own extension data
        pointer = mint.metadata_pointer
        if pointer is None:
            raise VerificationError({"metadata_pointer": ("present", None)})
        _compare(
            mismatches, "metadata_pointer.address", expected.address, pointer.metadata_address
        )
        _compare(
            mismatches,
            "metadata_pointer.authority",
            expected.metadata.update_authority,
            pointer.authority,
        )
        logger.info(f"Metadata pointer: {pointer.to_dict()}")

        if pointer.metadata_address is None:
            raise VerificationError({**mismatches, "metadata_pointer.address": (expected.address, None)})

        # (c) metadata record, read from wherever the pointer says it lives
        metadata = await fetch_token_metadata(self.client, pointer.metadata_address)
        _compare(mismatches, "metadata.mint", expected.metadata.mint, metadata.mint)
        _compare(
            mismatches,
            "metadata.update_authority",
            expected.metadata.update_authority,
            metadata.update_authority,
        )
        _compare(mismatches, "metadata.name", expected.metadata.name, metadata.name)
        _compare(mismatches, "metadata.symbol", expected.metadata.symbol, metadata.symbol)
        _compare(mismatches, "metadata.uri", expected.metadata.uri, metadata.uri)
        _compare(
            mismatches,
            "metadata.additional_metadata",
            expected.metadata.additional_dict(),
            metadata.additional_dict(),
        )
        logger.info(f"Metadata: {metadata.to_dict()}")

        if mismatches:
            logger.error(f"Verification of {expected.address} failed: {mismatches}")
            raise VerificationError(mismatches)

        logger.info(f"Mint {expected.address} verified")
        return VerifiedMint(mint=mint, metadata_pointer=pointer, metadata=metadata)
