"""
Instruction constructors for Token-2022 mints and the token-metadata interface.

Base token instructions (InitializeMint, MintToChecked) come from the spl
package; the extension and metadata-interface instructions it does not cover
are encoded here.
"""

import hashlib
import struct
from enum import IntEnum

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey
from solders.system_program import CreateAccountParams, create_account
from spl.token.instructions import (
    InitializeMintParams,
    MintToCheckedParams,
    initialize_mint,
    mint_to_checked,
)

from mint_launcher.core.pubkeys import SystemAddresses
from mint_launcher.token2022.metadata import encode_optional_pubkey, encode_string

# Token-2022 instruction tags
INITIALIZE_MINT_CLOSE_AUTHORITY = 25
INITIALIZE_NON_TRANSFERABLE_MINT = 32
INITIALIZE_PERMANENT_DELEGATE = 35
METADATA_POINTER_EXTENSION = 39
METADATA_POINTER_INITIALIZE = 0

def _interface_discriminator(preimage: str) -> bytes:
    return hashlib.sha256(preimage.encode()).digest()[:8]


METADATA_INITIALIZE_DISCRIMINATOR = _interface_discriminator(
    "spl_token_metadata_interface:initialize_account"
)
METADATA_UPDATE_FIELD_DISCRIMINATOR = _interface_discriminator(
    "spl_token_metadata_interface:updating_field"
)


class MetadataField(IntEnum):
    """Borsh enum tags of the metadata Field type."""

    NAME = 0
    SYMBOL = 1
    URI = 2
    KEY = 3


def encode_field(field: str) -> bytes:
    """Encode a field selector; anything but name/symbol/uri is a custom key."""
    builtin = {"name": MetadataField.NAME, "symbol": MetadataField.SYMBOL, "uri": MetadataField.URI}
    if field in builtin:
        return struct.pack("<B", builtin[field])
    return struct.pack("<B", MetadataField.KEY) + encode_string(field)


def create_mint_account_instruction(
    payer: Pubkey, mint: Pubkey, space: int, lamports: int
) -> Instruction:
    """System program CreateAccount for a mint owned by Token-2022."""
    return create_account(
        CreateAccountParams(
            from_pubkey=payer,
            to_pubkey=mint,
            lamports=lamports,
            space=space,
            owner=SystemAddresses.TOKEN_2022_PROGRAM,
        )
    )


def initialize_metadata_pointer_instruction(
    mint: Pubkey, authority: Pubkey | None, metadata_address: Pubkey | None
) -> Instruction:
    """MetadataPointer Initialize: authority and metadata address, 32 bytes each."""
    data = (
        struct.pack("<BB", METADATA_POINTER_EXTENSION, METADATA_POINTER_INITIALIZE)
        + encode_optional_pubkey(authority)
        + encode_optional_pubkey(metadata_address)
    )
    accounts = [AccountMeta(pubkey=mint, is_signer=False, is_writable=True)]
    return Instruction(SystemAddresses.TOKEN_2022_PROGRAM, data, accounts)


def initialize_mint_close_authority_instruction(
    mint: Pubkey, close_authority: Pubkey | None
) -> Instruction:
    """InitializeMintCloseAuthority with a COption<Pubkey> payload."""
    data = struct.pack("<B", INITIALIZE_MINT_CLOSE_AUTHORITY)
    if close_authority is None:
        data += struct.pack("<B", 0)
    else:
        data += struct.pack("<B", 1) + bytes(close_authority)
    accounts = [AccountMeta(pubkey=mint, is_signer=False, is_writable=True)]
    return Instruction(SystemAddresses.TOKEN_2022_PROGRAM, data, accounts)


def initialize_non_transferable_mint_instruction(mint: Pubkey) -> Instruction:
    data = struct.pack("<B", INITIALIZE_NON_TRANSFERABLE_MINT)
    accounts = [AccountMeta(pubkey=mint, is_signer=False, is_writable=True)]
    return Instruction(SystemAddresses.TOKEN_2022_PROGRAM, data, accounts)


def initialize_permanent_delegate_instruction(
    mint: Pubkey, delegate: Pubkey
) -> Instruction:
    data = struct.pack("<B", INITIALIZE_PERMANENT_DELEGATE) + bytes(delegate)
    accounts = [AccountMeta(pubkey=mint, is_signer=False, is_writable=True)]
    return Instruction(SystemAddresses.TOKEN_2022_PROGRAM, data, accounts)


def initialize_mint_instruction(
    mint: Pubkey,
    decimals: int,
    mint_authority: Pubkey,
    freeze_authority: Pubkey | None = None,
) -> Instruction:
    """InitializeMint against the Token-2022 program."""
    return initialize_mint(
        InitializeMintParams(
            program_id=SystemAddresses.TOKEN_2022_PROGRAM,
            mint=mint,
            decimals=decimals,
            mint_authority=mint_authority,
            freeze_authority=freeze_authority,
        )
    )


def initialize_token_metadata_instruction(
    metadata: Pubkey,
    update_authority: Pubkey,
    mint: Pubkey,
    mint_authority: Pubkey,
    name: str,
    symbol: str,
    uri: str,
) -> Instruction:
    """Token-metadata interface Initialize, served by Token-2022 itself."""
    data = (
        METADATA_INITIALIZE_DISCRIMINATOR
        + encode_string(name)
        + encode_string(symbol)
        + encode_string(uri)
    )
    accounts = [
        AccountMeta(pubkey=metadata, is_signer=False, is_writable=True),
        AccountMeta(pubkey=update_authority, is_signer=False, is_writable=False),
        AccountMeta(pubkey=mint, is_signer=False, is_writable=False),
        AccountMeta(pubkey=mint_authority, is_signer=True, is_writable=False),
    ]
    return Instruction(SystemAddresses.TOKEN_2022_PROGRAM, data, accounts)


def update_token_metadata_field_instruction(
    metadata: Pubkey, update_authority: Pubkey, field: str, value: str
) -> Instruction:
    """Token-metadata interface UpdateField: set a builtin field or add a key."""
    data = METADATA_UPDATE_FIELD_DISCRIMINATOR + encode_field(field) + encode_string(value)
    accounts = [
        AccountMeta(pubkey=metadata, is_signer=False, is_writable=True),
        AccountMeta(pubkey=update_authority, is_signer=True, is_writable=False),
    ]
    return Instruction(SystemAddresses.TOKEN_2022_PROGRAM, data, accounts)


def mint_to_checked_instruction(
    mint: Pubkey, destination: Pubkey, mint_authority: Pubkey, amount: int, decimals: int
) -> Instruction:
    """MintToChecked: the program rejects it when decimals differ from the mint's."""
    return mint_to_checked(
        MintToCheckedParams(
            program_id=SystemAddresses.TOKEN_2022_PROGRAM,
            mint=mint,
            dest=destination,
            mint_authority=mint_authority,
            amount=amount,
            decimals=decimals,
        )
    )
