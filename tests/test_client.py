from types import SimpleNamespace

import pytest
from solana.exceptions import SolanaRpcException
from solana.rpc.core import RPCException
from solders.rpc.requests import GetLatestBlockhash

from mint_launcher.core import client as client_module
from mint_launcher.core.client import SolanaClient, _rejection_from_rpc_exception
from mint_launcher.core.errors import (
    AccountAlreadyExistsError,
    RpcError,
    TransactionRejectedError,
)


def preflight_failure(message: str, logs: list[str], err: str | None = None) -> RPCException:
    return RPCException(
        SimpleNamespace(message=message, data=SimpleNamespace(logs=logs, err=err))
    )


def transport_failure() -> SolanaRpcException:
    # Same argument shape solana-py uses: (exc, func, self, request)
    return SolanaRpcException(
        ConnectionError("connection reset by peer"), "_make_request", None, GetLatestBlockhash()
    )


def test_already_in_use_maps_to_account_exists():
    error = _rejection_from_rpc_exception(
        preflight_failure(
            "Transaction simulation failed: Error processing Instruction 0: custom program error: 0x0",
            ["Allocate: account Address { address: 9wFF..., base: None } already in use"],
        )
    )
    assert isinstance(error, AccountAlreadyExistsError)
    assert error.logs[0].endswith("already in use")


def test_other_rejections_keep_reason_and_logs():
    error = _rejection_from_rpc_exception(
        preflight_failure(
            "Transaction simulation failed",
            ["Program TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb failed: insufficient funds for rent"],
            err="InstructionError(3, InsufficientFundsForRent)",
        )
    )
    assert type(error) is TransactionRejectedError
    assert "InsufficientFundsForRent" in error.reason
    assert "insufficient funds for rent" in str(error)


@pytest.fixture
def no_sleep(monkeypatch):
    delays = []

    async def sleep(seconds):
        delays.append(seconds)

    monkeypatch.setattr(client_module.asyncio, "sleep", sleep)
    return delays


async def test_transport_failures_are_retried(no_sleep):
    client = SolanaClient("https://api.devnet.solana.com", max_retries=3)
    attempts = []

    async def call():
        attempts.append(1)
        if len(attempts) < 3:
            raise transport_failure()
        return "ok"

    assert await client._with_retries("getAccountInfo", call) == "ok"
    assert no_sleep == [1, 2]


async def test_exhausted_retries_raise_rpc_error(no_sleep):
    client = SolanaClient("https://api.devnet.solana.com", max_retries=2)

    async def call():
        raise transport_failure()

    with pytest.raises(RpcError) as exc_info:
        await client._with_retries("getLatestBlockhash", call)
    assert exc_info.value.retryable
    assert "GetLatestBlockhash" in str(exc_info.value)


async def test_rejections_are_not_retried(no_sleep):
    client = SolanaClient("https://api.devnet.solana.com", max_retries=3)
    attempts = []

    async def call():
        attempts.append(1)
        raise TransactionRejectedError("custom program error: 0x12")

    with pytest.raises(TransactionRejectedError):
        await client._with_retries("sendTransaction", call)
    assert len(attempts) == 1
    assert no_sleep == []
