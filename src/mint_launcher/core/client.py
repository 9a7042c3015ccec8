"""
Solana client abstraction for blockchain operations.
"""

import asyncio
import json
from typing import Any, Awaitable, Callable, TypeVar

import aiohttp
from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solana.rpc.core import RPCException, UnconfirmedTxError
from solana.rpc.types import TxOpts
from solders.pubkey import Pubkey

from mint_launcher.core.errors import (
    AccountAlreadyExistsError,
    RpcError,
    TransactionRejectedError,
)
from mint_launcher.interfaces.ledger import AccountSnapshot, LedgerClient
from mint_launcher.launcher.assembler import AssembledTransaction
from mint_launcher.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

ALREADY_IN_USE_MARKER = "already in use"


def _rejection_from_rpc_exception(e: RPCException) -> TransactionRejectedError:
    """Translate a node-side RPC error into a rejection carrying the raw reason."""
    payload = e.args[0] if e.args else e
    reason = getattr(payload, "message", None) or str(payload)
    data = getattr(payload, "data", None)
    logs = list(getattr(data, "logs", None) or [])
    err = getattr(data, "err", None)
    if err is not None:
        reason = f"{reason} ({err})"

    if any(ALREADY_IN_USE_MARKER in line for line in [reason, *logs]):
        return AccountAlreadyExistsError(reason, logs)
    return TransactionRejectedError(reason, logs)


class SolanaClient(LedgerClient):
    """Abstraction for Solana RPC client operations."""

    def __init__(
        self,
        rpc_endpoint: str,
        max_retries: int = 3,
        skip_preflight: bool = False,
        confirm_poll_interval: float = 0.5,
    ):
        """Initialize Solana client with RPC endpoint.

        Args:
            rpc_endpoint: URL of the Solana RPC endpoint
            max_retries: Attempts per read or send on transport failure
            skip_preflight: Whether to skip preflight simulation on send
            confirm_poll_interval: Seconds between confirmation polls
        """
        self.rpc_endpoint = rpc_endpoint
        self.max_retries = max(1, max_retries)
        self.skip_preflight = skip_preflight
        self.confirm_poll_interval = confirm_poll_interval
        self._client: AsyncClient | None = None

    async def get_client(self) -> AsyncClient:
        """Get or create the AsyncClient instance.

        Returns:
            AsyncClient instance
        """
        if self._client is None:
            self._client = AsyncClient(self.rpc_endpoint, commitment=Confirmed)
        return self._client

    async def close(self) -> None:
        """Close the client connection."""
        if self._client:
            await self._client.close()
            self._client = None

    async def _with_retries(self, operation: str, call: Callable[[], Awaitable[T]]) -> T:
        """Run a transport call, retrying with exponential backoff.

        Raises:
            RpcError: When every attempt failed at the transport level
        """
        for attempt in range(self.max_retries):
            try:
                return await call()
            except SolanaRpcException as e:
                if attempt == self.max_retries - 1:
                    logger.error(f"{operation} failed after {self.max_retries} attempts")
                    raise RpcError(f"{operation} failed: {e!s}") from e

                wait_time = 2**attempt
                logger.warning(
                    f"{operation} attempt {attempt + 1} failed: {e!s}, retrying in {wait_time}s"
                )
                await asyncio.sleep(wait_time)
        raise RpcError(f"{operation} was not attempted")

    async def get_health(self) -> str | None:
        body = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "getHealth",
        }
        result = await self.post_rpc(body)
        if result and "result" in result:
            return result["result"]
        return None

    async def get_minimum_balance_for_rent_exemption(self, size: int) -> int:
        """Get the rent-exempt minimum for an account of the given size.

        Args:
            size: Account data length in bytes

        Returns:
            Lamports required for rent exemption
        """
        client = await self.get_client()

        async def call() -> int:
            try:
                response = await client.get_minimum_balance_for_rent_exemption(size)
            except RPCException as e:
                raise RpcError(f"getMinimumBalanceForRentExemption({size}) failed: {e!s}") from e
            return response.value

        return await self._with_retries("getMinimumBalanceForRentExemption", call)

    async def get_account_info(self, pubkey: Pubkey) -> AccountSnapshot | None:
        """Get account info from the blockchain.

        Args:
            pubkey: Public key of the account

        Returns:
            Account snapshot, or None if the account doesn't exist
        """
        client = await self.get_client()

        async def call() -> AccountSnapshot | None:
            try:
                response = await client.get_account_info(pubkey, encoding="base64")
            except RPCException as e:
                raise RpcError(f"getAccountInfo({pubkey}) failed: {e!s}") from e
            account = response.value
            if account is None:
                return None
            return AccountSnapshot(
                address=pubkey,
                lamports=account.lamports,
                owner=account.owner,
                data=bytes(account.data),
            )

        return await self._with_retries("getAccountInfo", call)

    async def send_and_confirm(self, transaction: AssembledTransaction) -> str:
        """Sign, send and confirm an assembled transaction.

        The transaction is signed once; transport retries resend the same
        signed bytes, which the ledger deduplicates by signature.

        Args:
            transaction: Assembled transaction with its signers

        Returns:
            Transaction signature
        """
        client = await self.get_client()

        blockhash_response = await self._with_retries(
            "getLatestBlockhash", lambda: client.get_latest_blockhash(commitment=Confirmed)
        )
        blockhash = blockhash_response.value.blockhash
        last_valid_block_height = blockhash_response.value.last_valid_block_height
        signed = transaction.to_transaction(blockhash)

        tx_opts = TxOpts(skip_preflight=self.skip_preflight, preflight_commitment=Confirmed)

        async def send():
            try:
                return await client.send_transaction(signed, tx_opts)
            except RPCException as e:
                raise _rejection_from_rpc_exception(e) from e

        response = await self._with_retries("sendTransaction", send)
        signature = response.value
        logger.info(f"Transaction sent: {signature}")

        try:
            status = await client.confirm_transaction(
                signature,
                commitment=Confirmed,
                sleep_seconds=self.confirm_poll_interval,
                last_valid_block_height=last_valid_block_height,
            )
        except UnconfirmedTxError as e:
            raise RpcError(f"Transaction {signature} was not confirmed: {e!s}") from e
        except SolanaRpcException as e:
            raise RpcError(f"Confirmation of {signature} failed: {e!s}") from e

        tx_status = status.value[0] if status.value else None
        if tx_status is not None and tx_status.err is not None:
            raise TransactionRejectedError(f"Transaction {signature} failed: {tx_status.err}")

        return str(signature)

    async def post_rpc(self, body: dict[str, Any]) -> dict[str, Any] | None:
        """
        Send a raw RPC request to the Solana node.

        Args:
            body: JSON-RPC request body.

        Returns:
            Optional[Dict[str, Any]]: Parsed JSON response, or None if the request fails.
        """
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self.rpc_endpoint,
                    json=body,
                    timeout=aiohttp.ClientTimeout(10),  # 10-second timeout
                ) as response:
                    response.raise_for_status()
                    return await response.json()
        except aiohttp.ClientError as e:
            logger.error(f"RPC request failed: {e!s}", exc_info=True)
            return None
        except json.JSONDecodeError as e:
            logger.error(f"Failed to decode RPC response: {e!s}", exc_info=True)
            return None
