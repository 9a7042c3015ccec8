"""
Decoders for Token-2022 mint and token account data.
"""

from dataclasses import dataclass, field

from construct import Bytes, Flag, Int8ul, Int16ul, Int32ul, Int64ul, Struct
from solders.pubkey import Pubkey

from mint_launcher.core.errors import LayoutError
from mint_launcher.token2022.extensions import (
    ACCOUNT_SIZE,
    ACCOUNT_TYPE_ACCOUNT,
    ACCOUNT_TYPE_MINT,
    LENGTH_SIZE,
    MINT_SIZE,
    TYPE_SIZE,
    ExtensionType,
)
from mint_launcher.token2022.metadata import (
    TokenMetadata,
    decode_optional_pubkey,
    unpack_metadata,
)

BASE_MINT_LAYOUT = Struct(
    "mint_authority_option" / Int32ul,
    "mint_authority" / Bytes(32),
    "supply" / Int64ul,
    "decimals" / Int8ul,
    "is_initialized" / Flag,
    "freeze_authority_option" / Int32ul,
    "freeze_authority" / Bytes(32),
)

# Only the leading fields of a token account are needed here
BASE_TOKEN_ACCOUNT_LAYOUT = Struct(
    "mint" / Bytes(32),
    "owner" / Bytes(32),
    "amount" / Int64ul,
)

METADATA_POINTER_LAYOUT = Struct(
    "authority" / Bytes(32),
    "metadata_address" / Bytes(32),
)

TLV_HEADER = Struct(
    "type" / Int16ul,
    "length" / Int16ul,
)

KNOWN_EXTENSION_TAGS = frozenset(int(ext) for ext in ExtensionType)


@dataclass(frozen=True)
class MetadataPointerState:
    """Metadata pointer extension value."""

    authority: Pubkey | None
    metadata_address: Pubkey | None

    def to_dict(self) -> dict[str, str | None]:
        return {
            "authority": str(self.authority) if self.authority else None,
            "metadataAddress": str(self.metadata_address) if self.metadata_address else None,
        }


@dataclass(frozen=True)
class MintState:
    """Decoded mint account."""

    address: Pubkey
    mint_authority: Pubkey | None
    supply: int
    decimals: int
    is_initialized: bool
    freeze_authority: Pubkey | None
    tlv_data: bytes = field(default=b"", repr=False)

    @property
    def extension_types(self) -> tuple[ExtensionType, ...]:
        return tuple(ext for ext, _ in iter_tlv_entries(self.tlv_data))

    def get_extension_data(self, extension: ExtensionType) -> bytes | None:
        for ext, value in iter_tlv_entries(self.tlv_data):
            if ext == extension:
                return value
        return None

    @property
    def metadata_pointer(self) -> MetadataPointerState | None:
        return get_metadata_pointer_state(self)


@dataclass(frozen=True)
class TokenAccountState:
    """Decoded token account (leading fields only)."""

    address: Pubkey
    mint: Pubkey
    owner: Pubkey
    amount: int


def _coption_pubkey(option: int, raw: bytes) -> Pubkey | None:
    return Pubkey.from_bytes(raw) if option else None


def iter_tlv_entries(tlv_data: bytes):
    """Yield (extension type, value) pairs from a TLV region.

    Stops at the first uninitialized entry, which marks unused trailing space.
    Entries with tags this package does not know are skipped.
    """
    offset = 0
    header = TYPE_SIZE + LENGTH_SIZE
    while offset + header <= len(tlv_data):
        entry = TLV_HEADER.parse(tlv_data[offset:offset + header])
        ext_type, length = entry.type, entry.length
        if ext_type == ExtensionType.UNINITIALIZED:
            return
        start = offset + header
        end = start + length
        if end > len(tlv_data):
            raise LayoutError(
                f"TLV entry {ext_type} overruns account data ({end} > {len(tlv_data)})"
            )
        if ext_type in KNOWN_EXTENSION_TAGS:
            yield ExtensionType(ext_type), tlv_data[start:end]
        offset = end


def _split_extension_region(data: bytes, expected_type: int) -> bytes:
    """Return the TLV region after the account-type byte, or b"" for plain layouts."""
    if len(data) <= ACCOUNT_SIZE:
        return b""
    account_type = data[ACCOUNT_SIZE]
    if account_type != expected_type:
        raise LayoutError(
            f"Unexpected account type {account_type}, expected {expected_type}"
        )
    return data[ACCOUNT_SIZE + 1:]


def decode_mint(address: Pubkey, data: bytes) -> MintState:
    """Decode Token-2022 mint account data.

    Raises:
        LayoutError: If the data is not a mint layout
    """
    data = bytes(data)
    if len(data) < MINT_SIZE:
        raise LayoutError(f"Mint data too short: {len(data)} bytes")
    if MINT_SIZE < len(data) <= ACCOUNT_SIZE:
        raise LayoutError(f"Invalid mint data length {len(data)}")

    parsed = BASE_MINT_LAYOUT.parse(data[:MINT_SIZE])
    return MintState(
        address=address,
        mint_authority=_coption_pubkey(parsed.mint_authority_option, parsed.mint_authority),
        supply=parsed.supply,
        decimals=parsed.decimals,
        is_initialized=parsed.is_initialized,
        freeze_authority=_coption_pubkey(
            parsed.freeze_authority_option, parsed.freeze_authority
        ),
        tlv_data=_split_extension_region(data, ACCOUNT_TYPE_MINT),
    )


def decode_token_account(address: Pubkey, data: bytes) -> TokenAccountState:
    """Decode the mint, owner and amount of a token account."""
    data = bytes(data)
    if len(data) < ACCOUNT_SIZE:
        raise LayoutError(f"Token account data too short: {len(data)} bytes")
    if len(data) > ACCOUNT_SIZE and data[ACCOUNT_SIZE] != ACCOUNT_TYPE_ACCOUNT:
        raise LayoutError(f"Account {address} is not a token account")

    parsed = BASE_TOKEN_ACCOUNT_LAYOUT.parse(data[:BASE_TOKEN_ACCOUNT_LAYOUT.sizeof()])
    return TokenAccountState(
        address=address,
        mint=Pubkey.from_bytes(parsed.mint),
        owner=Pubkey.from_bytes(parsed.owner),
        amount=parsed.amount,
    )


def get_metadata_pointer_state(mint: MintState) -> MetadataPointerState | None:
    """Read the metadata pointer out of a decoded mint, if present."""
    value = mint.get_extension_data(ExtensionType.METADATA_POINTER)
    if value is None:
        return None
    parsed = METADATA_POINTER_LAYOUT.parse(value)
    return MetadataPointerState(
        authority=decode_optional_pubkey(parsed.authority),
        metadata_address=decode_optional_pubkey(parsed.metadata_address),
    )


def get_token_metadata(mint: MintState) -> TokenMetadata | None:
    """Read the token metadata record embedded in a mint account, if present."""
    value = mint.get_extension_data(ExtensionType.TOKEN_METADATA)
    if value is None:
        return None
    return unpack_metadata(value)
