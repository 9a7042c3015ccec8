"""
Ledger client interface used by every pipeline stage.

The pipeline only talks to the ledger through this interface, so the RPC
implementation and in-memory test ledgers are interchangeable.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from solders.pubkey import Pubkey

if TYPE_CHECKING:
    from mint_launcher.launcher.assembler import AssembledTransaction


@dataclass(frozen=True)
class AccountSnapshot:
    """Read-only view of an account at the time it was fetched."""

    address: Pubkey
    lamports: int
    owner: Pubkey
    data: bytes = field(repr=False)


class LedgerClient(ABC):
    """Abstract interface for the remote ledger."""

    @abstractmethod
    async def get_health(self) -> str | None:
        """Return the node health string, or None if it cannot be determined."""
        pass

    @abstractmethod
    async def get_minimum_balance_for_rent_exemption(self, size: int) -> int:
        """Minimum lamports for an account of `size` bytes to be rent exempt.

        Raises:
            RpcError: On network or RPC failure
        """
        pass

    @abstractmethod
    async def get_account_info(self, address: Pubkey) -> AccountSnapshot | None:
        """Fetch an account, or None if it does not exist.

        Raises:
            RpcError: On network or RPC failure
        """
        pass

    @abstractmethod
    async def send_and_confirm(self, transaction: "AssembledTransaction") -> str:
        """Sign, broadcast and wait for the transaction to be confirmed.

        Returns:
            Transaction signature

        Raises:
            TransactionRejectedError: If the ledger rejected the transaction
            RpcError: On network or RPC failure
        """
        pass

    async def close(self) -> None:
        """Release any connection held by the client."""
        return None
