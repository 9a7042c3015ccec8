"""
Account size budget and rent-exempt deposit for a new mint.

The mint account is created with room for its extension layout only; the
metadata initialize instruction grows it in place by the TLV envelope. The
deposit therefore has to cover both before the account is created.
"""

from dataclasses import dataclass

from solders.pubkey import Pubkey

from mint_launcher.core.pubkeys import LAMPORTS_PER_SOL
from mint_launcher.interfaces.ledger import LedgerClient
from mint_launcher.launcher.config import MintConfig
from mint_launcher.token2022.extensions import ExtensionType, get_mint_len
from mint_launcher.token2022.metadata import TokenMetadata, metadata_envelope_len
from mint_launcher.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class AccountSizeBudget:
    """Byte sizes reserved for a mint and its embedded metadata."""

    extensions: tuple[ExtensionType, ...]
    mint_len: int
    metadata_envelope_len: int

    @property
    def total_len(self) -> int:
        return self.mint_len + self.metadata_envelope_len


@dataclass(frozen=True)
class FundedBudget:
    """Size budget together with the rent-exempt deposit for its total."""

    budget: AccountSizeBudget
    lamports: int


def build_metadata_record(config: MintConfig, mint: Pubkey) -> TokenMetadata:
    """Metadata record as it will exist on-ledger after creation."""
    return TokenMetadata(
        update_authority=config.update_authority_wallet.pubkey,
        mint=mint,
        name=config.metadata.name,
        symbol=config.metadata.symbol,
        uri=config.metadata.uri,
        additional_metadata=tuple(config.metadata.additional),
    )


def compute_size_budget(
    extensions: tuple[ExtensionType, ...], metadata: TokenMetadata
) -> AccountSizeBudget:
    """Compute the mint layout size and the metadata envelope size.

    Pure function of its inputs.
    """
    return AccountSizeBudget(
        extensions=tuple(extensions),
        mint_len=get_mint_len(extensions),
        metadata_envelope_len=metadata_envelope_len(metadata),
    )


async def estimate_rent(client: LedgerClient, budget: AccountSizeBudget) -> FundedBudget:
    """Ask the ledger for the rent-exempt deposit of the full budget.

    Raises:
        RpcError: On network or RPC failure
    """
    lamports = await client.get_minimum_balance_for_rent_exemption(budget.total_len)
    logger.info(
        f"Rent exemption for {budget.total_len} bytes "
        f"({budget.mint_len} mint + {budget.metadata_envelope_len} metadata): "
        f"{lamports} lamports ({lamports / LAMPORTS_PER_SOL:.6f} SOL)"
    )
    return FundedBudget(budget=budget, lamports=lamports)
