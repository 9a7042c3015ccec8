"""
End-to-end mint launch: size, fund, build, assemble, submit, verify, issue.

Each stage hands an immutable result to the next one and the lifecycle
tracker rejects any stage entered out of order. Any error aborts the
remaining stages.
"""

from dataclasses import dataclass

from solders.keypair import Keypair
from solders.pubkey import Pubkey

from mint_launcher.core.wallet import Wallet
from mint_launcher.interfaces.ledger import LedgerClient
from mint_launcher.launcher.assembler import AssembledTransaction, ComputeBudget, assemble
from mint_launcher.launcher.builder import InstructionPlan, MintInstructionBuilder
from mint_launcher.launcher.config import MintConfig
from mint_launcher.launcher.issuance import IssuanceResult, TokenIssuer
from mint_launcher.launcher.lifecycle import INSTRUCTION_STAGES, MintLifecycle, Stage
from mint_launcher.launcher.sizing import (
    AccountSizeBudget,
    FundedBudget,
    build_metadata_record,
    compute_size_budget,
    estimate_rent,
)
from mint_launcher.launcher.verifier import ExpectedMint, PostCreationVerifier, VerifiedMint
from mint_launcher.token2022.metadata import TokenMetadata
from mint_launcher.utils.explorer import explorer_address_url, explorer_tx_url
from mint_launcher.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class PreparedLaunch:
    """Everything computed before submission."""

    mint: Pubkey
    metadata: TokenMetadata
    budget: AccountSizeBudget
    funded: FundedBudget
    plan: InstructionPlan
    transaction: AssembledTransaction


@dataclass(frozen=True)
class LaunchResult:
    """Outcome of a completed launch."""

    mint: Pubkey
    mint_secret: str
    budget: AccountSizeBudget
    lamports: int
    signature: str
    verified: VerifiedMint
    issuance: IssuanceResult | None


class MintLauncher:
    """Runs the full launch pipeline for one mint."""

    def __init__(
        self,
        client: LedgerClient,
        config: MintConfig,
        compute_budget: ComputeBudget | None = None,
    ):
        config.validate()
        self.client = client
        self.config = config
        self.compute_budget = compute_budget
        self.mint_wallet = (
            Wallet.from_keypair(config.mint_keypair) if config.mint_keypair else Wallet.generate()
        )
        self.lifecycle = MintLifecycle(str(self.mint_wallet.pubkey))

    @property
    def mint(self) -> Pubkey:
        return self.mint_wallet.pubkey

    def _keypairs(self) -> list[Keypair]:
        return [*self.config.signing_keypairs(), self.mint_wallet.keypair]

    async def prepare(self) -> PreparedLaunch:
        """Compute sizes and deposit, then build and assemble the creation transaction."""
        config = self.config
        mint = self.mint
        logger.info(f"Preparing mint {mint} ({config.metadata.name} / {config.metadata.symbol})")

        metadata = build_metadata_record(config, mint)
        budget = compute_size_budget(config.resolved_extensions, metadata)
        self.lifecycle.advance(Stage.SIZED)
        logger.info(
            f"Size budget: mint {budget.mint_len} bytes, metadata envelope "
            f"{budget.metadata_envelope_len} bytes, total {budget.total_len} bytes"
        )

        funded = await estimate_rent(self.client, budget)
        plan = MintInstructionBuilder(config).build(mint, funded)
        for stage in INSTRUCTION_STAGES:
            self.lifecycle.advance(stage)

        transaction = assemble(
            plan.instructions, config.payer.pubkey, self._keypairs(), self.compute_budget
        )
        return PreparedLaunch(
            mint=mint,
            metadata=metadata,
            budget=budget,
            funded=funded,
            plan=plan,
            transaction=transaction,
        )

    async def submit(self, prepared: PreparedLaunch) -> str:
        self.lifecycle.require(Stage.METADATA_UPDATED)
        signature = await self.client.send_and_confirm(prepared.transaction)
        self.lifecycle.advance(Stage.SUBMITTED)
        logger.info(f"Create Mint Account: {explorer_tx_url(signature, self.config.cluster)}")
        return signature

    async def verify(self, prepared: PreparedLaunch) -> VerifiedMint:
        self.lifecycle.require(Stage.SUBMITTED)
        expected = ExpectedMint(
            address=prepared.mint,
            decimals=self.config.decimals,
            mint_authority=self.config.mint_authority_wallet.pubkey,
            freeze_authority=self.config.freeze_authority,
            metadata=prepared.metadata,
        )
        verified = await PostCreationVerifier(self.client).verify(expected)
        self.lifecycle.advance(Stage.VERIFIED)
        logger.info(f"Mint Account: {explorer_address_url(prepared.mint, self.config.cluster)}")
        return verified

    async def issue(self, verified: VerifiedMint) -> IssuanceResult:
        self.lifecycle.require(Stage.VERIFIED)
        issuer = TokenIssuer(
            self.client,
            self.config.payer.keypair,
            self.config.mint_authority_wallet.keypair,
            self.compute_budget,
        )
        holder = await issuer.resolve_holder_account(
            verified.mint.address, self.config.resolved_holder_owner
        )
        result = await issuer.issue_checked(
            verified.mint.address, holder, self.config.issue_amount, self.config.decimals
        )
        self.lifecycle.advance(Stage.ISSUED)
        logger.info(
            f"Issued {result.amount} base units to {result.holder.address}; "
            f"balance {result.holder.amount}"
        )
        return result

    async def run(self) -> LaunchResult:
        """Execute every stage in order.

        Returns:
            Launch result with the verified state and issuance outcome
        """
        health = await self.client.get_health()
        if health != "ok":
            logger.warning(f"RPC node health is {health!r}")

        prepared = await self.prepare()
        signature = await self.submit(prepared)
        verified = await self.verify(prepared)

        issuance = None
        if self.config.issue_amount > 0:
            issuance = await self.issue(verified)
        else:
            logger.info("Issuance amount is 0, skipping holder account and issuance")

        return LaunchResult(
            mint=prepared.mint,
            mint_secret=self.mint_wallet.secret_base58(),
            budget=prepared.budget,
            lamports=prepared.funded.lamports,
            signature=signature,
            verified=verified,
            issuance=issuance,
        )
