"""
Token-2022 extension types and mint account sizing.

Mint accounts with extensions are laid out as the 165-byte base account
region (82 bytes of mint state followed by zero padding), one account-type
byte, then a sequence of TLV entries: u16 type, u16 length, value.
"""

from enum import IntEnum
from typing import Final, Iterable

from mint_launcher.core.errors import LayoutError

MINT_SIZE: Final[int] = 82
ACCOUNT_SIZE: Final[int] = 165
MULTISIG_SIZE: Final[int] = 355
ACCOUNT_TYPE_SIZE: Final[int] = 1
TYPE_SIZE: Final[int] = 2
LENGTH_SIZE: Final[int] = 2

# Value of the account-type byte at offset ACCOUNT_SIZE
ACCOUNT_TYPE_MINT: Final[int] = 1
ACCOUNT_TYPE_ACCOUNT: Final[int] = 2


class ExtensionType(IntEnum):
    """Extension type tags as stored in the TLV header."""

    UNINITIALIZED = 0
    TRANSFER_FEE_CONFIG = 1
    TRANSFER_FEE_AMOUNT = 2
    MINT_CLOSE_AUTHORITY = 3
    CONFIDENTIAL_TRANSFER_MINT = 4
    CONFIDENTIAL_TRANSFER_ACCOUNT = 5
    DEFAULT_ACCOUNT_STATE = 6
    IMMUTABLE_OWNER = 7
    MEMO_TRANSFER = 8
    NON_TRANSFERABLE = 9
    INTEREST_BEARING_CONFIG = 10
    CPI_GUARD = 11
    PERMANENT_DELEGATE = 12
    NON_TRANSFERABLE_ACCOUNT = 13
    TRANSFER_HOOK = 14
    TRANSFER_HOOK_ACCOUNT = 15
    CONFIDENTIAL_TRANSFER_FEE_CONFIG = 16
    CONFIDENTIAL_TRANSFER_FEE_AMOUNT = 17
    METADATA_POINTER = 18
    TOKEN_METADATA = 19
    GROUP_POINTER = 20
    TOKEN_GROUP = 21
    GROUP_MEMBER_POINTER = 22
    TOKEN_GROUP_MEMBER = 23

    @classmethod
    def from_name(cls, name: str) -> "ExtensionType":
        """Look up an extension by its snake_case config name."""
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise LayoutError(f"Unknown extension type '{name}'") from None

    @property
    def config_name(self) -> str:
        return self.name.lower()


# Fixed value lengths of the mint extensions this launcher can initialize.
# Every one of them is written by its own initializer before InitializeMint.
MINT_EXTENSION_LENGTHS: Final[dict[ExtensionType, int]] = {
    ExtensionType.MINT_CLOSE_AUTHORITY: 32,
    ExtensionType.NON_TRANSFERABLE: 0,
    ExtensionType.PERMANENT_DELEGATE: 32,
    ExtensionType.METADATA_POINTER: 64,
}

SUPPORTED_MINT_EXTENSIONS: Final[frozenset[ExtensionType]] = frozenset(
    MINT_EXTENSION_LENGTHS
)


def get_type_len(extension: ExtensionType) -> int:
    """Return the value length of a fixed-size mint extension.

    Raises:
        LayoutError: If the extension is account-only, variable-length or
            not supported by the launcher
    """
    try:
        return MINT_EXTENSION_LENGTHS[extension]
    except KeyError:
        raise LayoutError(
            f"Extension {extension.config_name} cannot be sized into a mint account; "
            f"supported: {sorted(e.config_name for e in SUPPORTED_MINT_EXTENSIONS)}"
        ) from None


def add_type_and_length_to_len(length: int) -> int:
    """Length of a TLV entry whose value is `length` bytes."""
    return length + TYPE_SIZE + LENGTH_SIZE


def normalize_extensions(extensions: Iterable[ExtensionType]) -> tuple[ExtensionType, ...]:
    """Deduplicate and sort an extension set so sizing never depends on order."""
    return tuple(sorted(set(extensions)))


def get_mint_len(extensions: Iterable[ExtensionType]) -> int:
    """Compute the byte size of a mint account carrying the given extensions.

    Args:
        extensions: Fixed-size mint extensions to reserve space for

    Returns:
        82 for a plain mint, otherwise base account length plus the
        account-type byte plus one TLV entry per extension
    """
    extension_set = normalize_extensions(extensions)
    if not extension_set:
        return MINT_SIZE

    account_length = (
        ACCOUNT_SIZE
        + ACCOUNT_TYPE_SIZE
        + sum(add_type_and_length_to_len(get_type_len(e)) for e in extension_set)
    )
    # A mint must never be mistaken for a multisig account by its length
    if account_length == MULTISIG_SIZE:
        return account_length + TYPE_SIZE
    return account_length
