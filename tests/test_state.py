"""
Decoding of mint and token account bytes.
"""

import struct

import pytest
from solders.keypair import Keypair

from mint_launcher.core.errors import LayoutError
from mint_launcher.token2022.extensions import ExtensionType
from mint_launcher.token2022.metadata import TokenMetadata, pack_metadata
from mint_launcher.token2022.state import (
    decode_mint,
    decode_token_account,
    get_metadata_pointer_state,
    get_token_metadata,
    iter_tlv_entries,
)

MINT = Keypair().pubkey()
AUTHORITY = Keypair().pubkey()


def base_mint(decimals=9, supply=0, freeze=None) -> bytes:
    return (
        struct.pack("<I", 1)
        + bytes(AUTHORITY)
        + struct.pack("<QB?", supply, decimals, True)
        + struct.pack("<I", 1 if freeze else 0)
        + (bytes(freeze) if freeze else bytes(32))
    )


def tlv(ext_type: int, value: bytes) -> bytes:
    return struct.pack("<HH", ext_type, len(value)) + value


def extended_mint(*entries: bytes, **kwargs) -> bytes:
    return base_mint(**kwargs) + bytes(165 - 82) + bytes([1]) + b"".join(entries)


def test_plain_mint():
    state = decode_mint(MINT, base_mint(decimals=6, supply=42))
    assert state.decimals == 6
    assert state.supply == 42
    assert state.mint_authority == AUTHORITY
    assert state.freeze_authority is None
    assert state.is_initialized
    assert state.extension_types == ()
    assert state.metadata_pointer is None


def test_freeze_authority_decoded():
    freeze = Keypair().pubkey()
    assert decode_mint(MINT, base_mint(freeze=freeze)).freeze_authority == freeze


def test_pointer_and_metadata_entries():
    metadata = TokenMetadata(
        update_authority=AUTHORITY,
        mint=MINT,
        name="Bottle Test Tokens",
        symbol="BTT",
        additional_metadata=(("description", "Testnet random tokens"),),
    )
    data = extended_mint(
        tlv(ExtensionType.METADATA_POINTER, bytes(AUTHORITY) + bytes(MINT)),
        tlv(ExtensionType.TOKEN_METADATA, pack_metadata(metadata)),
    )
    state = decode_mint(MINT, data)

    assert state.extension_types == (ExtensionType.METADATA_POINTER, ExtensionType.TOKEN_METADATA)
    pointer = get_metadata_pointer_state(state)
    assert pointer.authority == AUTHORITY
    assert pointer.metadata_address == MINT
    assert pointer.to_dict()["metadataAddress"] == str(MINT)
    assert get_token_metadata(state) == metadata


def test_zero_pointer_fields_are_none():
    state = decode_mint(MINT, extended_mint(tlv(ExtensionType.METADATA_POINTER, bytes(64))))
    pointer = state.metadata_pointer
    assert pointer.authority is None
    assert pointer.metadata_address is None


def test_trailing_zero_space_ends_tlv_region():
    data = extended_mint(tlv(ExtensionType.NON_TRANSFERABLE, b""), bytes(16))
    assert decode_mint(MINT, data).extension_types == (ExtensionType.NON_TRANSFERABLE,)


def test_overrunning_entry_rejected():
    data = extended_mint(struct.pack("<HH", ExtensionType.METADATA_POINTER, 64) + bytes(10))
    with pytest.raises(LayoutError):
        decode_mint(MINT, data).extension_types


def test_unknown_extension_tags_are_skipped():
    data = tlv(999, b"ab") + tlv(ExtensionType.NON_TRANSFERABLE, b"")
    assert [ext for ext, _ in iter_tlv_entries(data)] == [ExtensionType.NON_TRANSFERABLE]


def test_mint_with_newer_extension_still_decodes():
    data = extended_mint(
        tlv(ExtensionType.METADATA_POINTER, bytes(AUTHORITY) + bytes(MINT)),
        tlv(27, bytes(8)),
    )
    state = decode_mint(MINT, data)
    assert state.extension_types == (ExtensionType.METADATA_POINTER,)
    assert state.metadata_pointer.metadata_address == MINT


def test_unknown_entry_overrun_still_rejected():
    with pytest.raises(LayoutError):
        list(iter_tlv_entries(struct.pack("<HH", 999, 16) + bytes(4)))


@pytest.mark.parametrize("data", [base_mint()[:40], base_mint() + bytes(18), base_mint() + bytes(83)])
def test_invalid_mint_lengths(data):
    with pytest.raises(LayoutError):
        decode_mint(MINT, data)


def test_token_account_type_byte_is_checked():
    with pytest.raises(LayoutError):
        decode_mint(MINT, base_mint() + bytes(165 - 82) + bytes([2]) + bytes(4))


def test_token_account_decoded():
    owner = Keypair().pubkey()
    data = bytes(MINT) + bytes(owner) + struct.pack("<Q", 100 * 10**9) + bytes(165 - 72)
    state = decode_token_account(MINT, data + bytes([2]) + tlv(ExtensionType.IMMUTABLE_OWNER, b""))
    assert state.mint == MINT
    assert state.owner == owner
    assert state.amount == 100 * 10**9


def test_mint_bytes_are_not_a_token_account():
    with pytest.raises(LayoutError):
        decode_token_account(MINT, extended_mint(tlv(ExtensionType.NON_TRANSFERABLE, b"")))
