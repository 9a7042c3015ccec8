"""
Holder account resolution and checked supply issuance.
"""

from dataclasses import dataclass

from solders.keypair import Keypair
from solders.pubkey import Pubkey
from spl.token.instructions import (
    create_idempotent_associated_token_account,
    get_associated_token_address,
)

from mint_launcher.core.errors import AccountNotFoundError, DecimalsMismatchError, LayoutError
from mint_launcher.core.pubkeys import SystemAddresses
from mint_launcher.interfaces.ledger import LedgerClient
from mint_launcher.launcher.assembler import ComputeBudget, assemble
from mint_launcher.launcher.verifier import fetch_mint
from mint_launcher.token2022 import instructions as ix
from mint_launcher.token2022.state import TokenAccountState, decode_token_account
from mint_launcher.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class HolderAccount:
    """Associated token account of one owner for one mint."""

    address: Pubkey
    owner: Pubkey
    mint: Pubkey
    amount: int
    created: bool = False


@dataclass(frozen=True)
class IssuanceResult:
    """Outcome of a checked issuance."""

    holder: HolderAccount
    amount: int
    decimals: int
    signature: str


async def fetch_token_account(client: LedgerClient, address: Pubkey) -> TokenAccountState | None:
    account = await client.get_account_info(address)
    if account is None:
        return None
    if account.owner != SystemAddresses.TOKEN_2022_PROGRAM:
        raise LayoutError(f"Account {address} is owned by {account.owner}, not Token-2022")
    return decode_token_account(address, account.data)


class TokenIssuer:
    """Resolves holder accounts and issues supply for a mint."""

    def __init__(
        self,
        client: LedgerClient,
        payer: Keypair,
        mint_authority: Keypair,
        compute_budget: ComputeBudget | None = None,
    ):
        self.client = client
        self.payer = payer
        self.mint_authority = mint_authority
        self.compute_budget = compute_budget

    async def resolve_holder_account(self, mint: Pubkey, owner: Pubkey) -> HolderAccount:
        """Return the owner's associated token account, creating it if absent.

        Raises:
            LayoutError: If the derived address holds an account for another mint
            AccountNotFoundError: If the account is still missing after creation
        """
        address = get_associated_token_address(owner, mint, SystemAddresses.TOKEN_2022_PROGRAM)
        state = await fetch_token_account(self.client, address)
        created = False

        if state is None:
            logger.info(f"Creating holder account {address} for owner {owner}")
            transaction = assemble(
                [
                    create_idempotent_associated_token_account(
                        self.payer.pubkey(), owner, mint, SystemAddresses.TOKEN_2022_PROGRAM
                    )
                ],
                self.payer.pubkey(),
                [self.payer],
                self.compute_budget,
            )
            signature = await self.client.send_and_confirm(transaction)
            logger.info(f"Holder account created: {signature}")
            state = await fetch_token_account(self.client, address)
            if state is None:
                raise AccountNotFoundError(f"Holder account {address} missing after creation")
            created = True

        if state.mint != mint or state.owner != owner:
            raise LayoutError(
                f"Holder account {address} belongs to mint {state.mint} / owner {state.owner}"
            )

        logger.info(f"Holder account: {address} ATA of {owner}")
        return HolderAccount(
            address=address, owner=owner, mint=mint, amount=state.amount, created=created
        )

    async def issue_checked(
        self, mint: Pubkey, holder: HolderAccount, amount: int, decimals: int
    ) -> IssuanceResult:
        """Issue `amount` base units into `holder`, checking `decimals` against the mint.

        Raises:
            DecimalsMismatchError: If `decimals` differs from the mint's recorded value
            TransactionRejectedError: If the ledger rejects the issuance
        """
        mint_state = await fetch_mint(self.client, mint)
        if mint_state.decimals != decimals:
            raise DecimalsMismatchError(expected=decimals, actual=mint_state.decimals)

        transaction = assemble(
            [
                ix.mint_to_checked_instruction(
                    mint, holder.address, self.mint_authority.pubkey(), amount, decimals
                )
            ],
            self.payer.pubkey(),
            [self.payer, self.mint_authority],
            self.compute_budget,
        )
        signature = await self.client.send_and_confirm(transaction)
        logger.info(f"Mint tokens txn hash {signature}")

        state = await fetch_token_account(self.client, holder.address)
        if state is None:
            raise AccountNotFoundError(f"Holder account {holder.address} disappeared")

        return IssuanceResult(
            holder=HolderAccount(
                address=holder.address,
                owner=state.owner,
                mint=state.mint,
                amount=state.amount,
                created=holder.created,
            ),
            amount=amount,
            decimals=decimals,
            signature=signature,
        )
