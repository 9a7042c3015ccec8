"""
Exception types raised across the mint launcher pipeline.

Each class marks one failure family so callers can tell a bad request apart
from a lost one:

- ConfigurationError / SignerError: invalid or missing configuration, raised
  before any network call.
- LayoutError: extension set or instruction order rejected at build time.
- PipelineOrderError: a lifecycle stage was entered out of order.
- RpcError: transport or RPC failure, safe to retry the failed step.
- TransactionRejectedError / AccountAlreadyExistsError: the ledger refused the
  transaction; nothing was applied.
- VerificationError: the ledger state read back differs from the request.
- DecimalsMismatchError: checked issuance called with the wrong precision.
- AccountNotFoundError: a required account does not exist.
"""

__all__ = [
    "MintLauncherError",
    "ConfigurationError",
    "SignerError",
    "LayoutError",
    "PipelineOrderError",
    "RpcError",
    "TransactionRejectedError",
    "AccountAlreadyExistsError",
    "VerificationError",
    "DecimalsMismatchError",
    "AccountNotFoundError",
]


class MintLauncherError(Exception):
    """Base class for every error raised by the launcher."""

    retryable: bool = False


class ConfigurationError(MintLauncherError, ValueError):
    """Configuration is missing, malformed or out of range."""


class SignerError(ConfigurationError):
    """A required signer has no keypair available."""


class LayoutError(MintLauncherError, ValueError):
    """Extension set or instruction sequence cannot produce a valid mint."""


class PipelineOrderError(MintLauncherError, RuntimeError):
    """A lifecycle transition skipped or repeated a stage."""


class RpcError(MintLauncherError, RuntimeError):
    """Network or RPC failure before the ledger applied anything."""

    retryable = True


class TransactionRejectedError(MintLauncherError, RuntimeError):
    """The ledger rejected a transaction.

    Attributes:
        reason: Raw rejection reason reported by the node
        logs: Program log lines, if the node returned any
    """

    def __init__(self, reason: str, logs: list[str] | None = None):
        super().__init__(reason)
        self.reason = reason
        self.logs = list(logs or [])

    def __str__(self) -> str:
        if not self.logs:
            return self.reason
        return self.reason + "\n" + "\n".join(self.logs)


class AccountAlreadyExistsError(TransactionRejectedError):
    """Account creation targeted an address that is already in use."""


class VerificationError(MintLauncherError, RuntimeError):
    """State read back from the ledger does not match what was written.

    Attributes:
        mismatches: Mapping of field name to (expected, actual)
    """

    def __init__(self, mismatches: dict[str, tuple[object, object]]):
        self.mismatches = dict(mismatches)
        details = ", ".join(
            f"{field}: expected {expected!r}, got {actual!r}"
            for field, (expected, actual) in self.mismatches.items()
        )
        super().__init__(f"Post-creation verification failed ({details})")


class DecimalsMismatchError(MintLauncherError, ValueError):
    """Checked issuance decimals differ from the mint's recorded decimals."""

    def __init__(self, expected: int, actual: int):
        super().__init__(
            f"Decimals mismatch: mint records {actual}, caller supplied {expected}"
        )
        self.expected = expected
        self.actual = actual


class AccountNotFoundError(MintLauncherError, LookupError):
    """A required account does not exist on the ledger."""
