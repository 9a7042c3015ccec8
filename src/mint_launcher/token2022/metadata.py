"""
Token metadata record and its Borsh serialization.

The record is stored as a TLV entry inside the account named by the mint's
metadata pointer. The value layout is:

    update_authority  32 bytes (all zeros means no authority)
    mint              32 bytes
    name              u32 length + UTF-8
    symbol            u32 length + UTF-8
    uri               u32 length + UTF-8
    additional        u32 count + (key, value) string pairs
"""

from dataclasses import dataclass, field

from construct import Bytes, ConstructError, Int32ul, PascalString, PrefixedArray, Struct
from solders.pubkey import Pubkey

from mint_launcher.core.errors import LayoutError
from mint_launcher.token2022.extensions import LENGTH_SIZE, TYPE_SIZE

PUBLIC_KEY_SIZE = 32
ZERO_PUBKEY_BYTES = bytes(PUBLIC_KEY_SIZE)

BORSH_STRING = PascalString(Int32ul, "utf8")

TOKEN_METADATA_LAYOUT = Struct(
    "update_authority" / Bytes(PUBLIC_KEY_SIZE),
    "mint" / Bytes(PUBLIC_KEY_SIZE),
    "name" / BORSH_STRING,
    "symbol" / BORSH_STRING,
    "uri" / BORSH_STRING,
    "additional_metadata" / PrefixedArray(
        Int32ul,
        Struct(
            "key" / BORSH_STRING,
            "value" / BORSH_STRING,
        ),
    ),
)


@dataclass(frozen=True)
class TokenMetadata:
    """Descriptive metadata attached to a mint."""

    update_authority: Pubkey | None
    mint: Pubkey
    name: str
    symbol: str
    uri: str = ""
    additional_metadata: tuple[tuple[str, str], ...] = field(default_factory=tuple)

    def additional_dict(self) -> dict[str, str]:
        return dict(self.additional_metadata)

    def to_dict(self) -> dict[str, object]:
        """Convert to a JSON-friendly dictionary for logging."""
        return {
            "updateAuthority": str(self.update_authority) if self.update_authority else None,
            "mint": str(self.mint),
            "name": self.name,
            "symbol": self.symbol,
            "uri": self.uri,
            "additionalMetadata": [list(pair) for pair in self.additional_metadata],
        }


def encode_string(value: str) -> bytes:
    """Encode a string as u32 length-prefixed UTF-8."""
    return BORSH_STRING.build(value)


def encode_optional_pubkey(pubkey: Pubkey | None) -> bytes:
    """Encode an optional non-zero pubkey; None is 32 zero bytes."""
    return bytes(pubkey) if pubkey is not None else ZERO_PUBKEY_BYTES


def decode_optional_pubkey(data: bytes) -> Pubkey | None:
    if data == ZERO_PUBKEY_BYTES:
        return None
    return Pubkey.from_bytes(data)


def pack_metadata(metadata: TokenMetadata) -> bytes:
    """Serialize a metadata record exactly as the token-metadata program does."""
    return TOKEN_METADATA_LAYOUT.build(
        {
            "update_authority": encode_optional_pubkey(metadata.update_authority),
            "mint": bytes(metadata.mint),
            "name": metadata.name,
            "symbol": metadata.symbol,
            "uri": metadata.uri,
            "additional_metadata": [
                {"key": key, "value": value} for key, value in metadata.additional_metadata
            ],
        }
    )


def unpack_metadata(data: bytes) -> TokenMetadata:
    """Decode a metadata record from its Borsh bytes.

    Raises:
        LayoutError: If the buffer is truncated or a string is not valid UTF-8
    """
    try:
        parsed = TOKEN_METADATA_LAYOUT.parse(bytes(data))
    except ConstructError as e:
        raise LayoutError(f"Malformed token metadata: {e!s}") from e

    return TokenMetadata(
        update_authority=decode_optional_pubkey(parsed.update_authority),
        mint=Pubkey.from_bytes(parsed.mint),
        name=parsed.name,
        symbol=parsed.symbol,
        uri=parsed.uri,
        additional_metadata=tuple(
            (entry.key, entry.value) for entry in parsed.additional_metadata
        ),
    )


def metadata_len(metadata: TokenMetadata) -> int:
    """Serialized length of the metadata record."""
    return len(pack_metadata(metadata))


def metadata_envelope_len(metadata: TokenMetadata) -> int:
    """TLV header plus serialized record: the bytes metadata adds to its account."""
    return TYPE_SIZE + LENGTH_SIZE + metadata_len(metadata)
