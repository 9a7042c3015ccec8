"""
Packages ordered instructions into one atomic transaction with its exact signer set.
"""

from dataclasses import dataclass
from typing import Iterable

from solders.compute_budget import set_compute_unit_limit, set_compute_unit_price
from solders.hash import Hash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from mint_launcher.core.errors import LayoutError, SignerError
from mint_launcher.utils.logger import get_logger

logger = get_logger(__name__)

# Maximum serialized transaction size accepted by the cluster (one UDP packet)
PACKET_DATA_SIZE = 1232


@dataclass(frozen=True)
class ComputeBudget:
    """Optional compute budget prefix for congested clusters."""

    unit_limit: int
    unit_price_microlamports: int


@dataclass(frozen=True)
class AssembledTransaction:
    """Instructions in final order, the fee payer and exactly the required signers."""

    instructions: tuple[Instruction, ...]
    fee_payer: Pubkey
    signers: tuple[Keypair, ...]

    @property
    def signer_pubkeys(self) -> tuple[Pubkey, ...]:
        return tuple(kp.pubkey() for kp in self.signers)

    def to_transaction(self, recent_blockhash: Hash) -> Transaction:
        """Compile and sign against a recent blockhash."""
        message = Message(list(self.instructions), self.fee_payer)
        return Transaction(list(self.signers), message, recent_blockhash)

    def serialized_size(self) -> int:
        """Wire size in bytes; the blockhash does not affect the length."""
        return len(bytes(self.to_transaction(Hash.default())))


def required_signers(instructions: Iterable[Instruction], fee_payer: Pubkey) -> list[Pubkey]:
    """Fee payer first, then every signer account in instruction order, deduplicated."""
    signers = [fee_payer]
    for instruction in instructions:
        for meta in instruction.accounts:
            if meta.is_signer and meta.pubkey not in signers:
                signers.append(meta.pubkey)
    return signers


def assemble(
    instructions: Iterable[Instruction],
    fee_payer: Pubkey,
    keypairs: Iterable[Keypair],
    compute_budget: ComputeBudget | None = None,
) -> AssembledTransaction:
    """Build an atomic transaction from an ordered instruction list.

    Args:
        instructions: Instructions in the order they must execute
        fee_payer: Account paying transaction fees
        keypairs: Available keypairs; those not required are dropped
        compute_budget: Optional compute budget instructions to prepend

    Returns:
        Assembled transaction with the minimal signer set

    Raises:
        SignerError: If a required signer has no keypair
        LayoutError: If the signed transaction exceeds the packet size
    """
    ordered = list(instructions)
    if not ordered:
        raise ValueError("Cannot assemble an empty transaction")

    if compute_budget is not None:
        ordered = [
            set_compute_unit_limit(compute_budget.unit_limit),
            set_compute_unit_price(compute_budget.unit_price_microlamports),
        ] + ordered

    available = {kp.pubkey(): kp for kp in keypairs}
    needed = required_signers(ordered, fee_payer)

    missing = [str(pubkey) for pubkey in needed if pubkey not in available]
    if missing:
        raise SignerError(f"No keypair available for required signer(s): {missing}")

    signers = tuple(available[pubkey] for pubkey in needed)
    transaction = AssembledTransaction(
        instructions=tuple(ordered), fee_payer=fee_payer, signers=signers
    )

    size = transaction.serialized_size()
    if size > PACKET_DATA_SIZE:
        raise LayoutError(
            f"Transaction is {size} bytes, over the {PACKET_DATA_SIZE}-byte packet limit; "
            f"shorten the metadata or move additional fields to a later update"
        )
    logger.debug(
        f"Assembled {len(ordered)} instructions ({size} bytes) with signers "
        f"{[str(p) for p in needed]}"
    )
    return transaction
