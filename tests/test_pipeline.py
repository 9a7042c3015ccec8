"""
End-to-end launch tests against the in-memory ledger.
"""

import pytest
from fake_ledger import rent_exempt_minimum
from solders.keypair import Keypair
from spl.token.instructions import get_associated_token_address

from mint_launcher.core.errors import (
    AccountAlreadyExistsError,
    DecimalsMismatchError,
    LayoutError,
    PipelineOrderError,
    RpcError,
    TransactionRejectedError,
    VerificationError,
)
from mint_launcher.core.pubkeys import SystemAddresses
from mint_launcher.core.wallet import Wallet
from mint_launcher.launcher.assembler import assemble
from mint_launcher.launcher.builder import MintInstructionBuilder
from mint_launcher.launcher.config import MetadataFields
from mint_launcher.launcher.issuance import TokenIssuer
from mint_launcher.launcher.lifecycle import STAGE_ORDER, Stage
from mint_launcher.launcher.pipeline import MintLauncher
from mint_launcher.launcher.sizing import (
    FundedBudget,
    build_metadata_record,
    compute_size_budget,
)
from mint_launcher.launcher.verifier import ExpectedMint, PostCreationVerifier, fetch_mint
from mint_launcher.token2022.extensions import ExtensionType
from mint_launcher.token2022.metadata import TokenMetadata
from mint_launcher.token2022.state import get_metadata_pointer_state


async def test_bottle_test_tokens_end_to_end(ledger, make_config, payer):
    launcher = MintLauncher(ledger, make_config())
    result = await launcher.run()

    verified = result.verified
    assert verified.mint.decimals == 9
    assert verified.mint.mint_authority == payer.pubkey
    assert verified.mint.freeze_authority is None
    assert verified.metadata.symbol == "BTT"
    assert verified.metadata.name == "Bottle Test Tokens"
    assert verified.metadata_pointer.metadata_address == result.mint
    assert len(verified.metadata.additional_metadata) == 1
    assert verified.metadata.additional_metadata[0][0] == "description"
    assert launcher.lifecycle.stage == Stage.ISSUED


async def test_issuance_end_to_end(ledger, make_config, payer):
    result = await MintLauncher(ledger, make_config()).run()

    issuance = result.issuance
    assert issuance is not None
    assert issuance.holder.amount == 100 * 10**9
    assert issuance.holder.owner == payer.pubkey
    assert issuance.holder.address == get_associated_token_address(
        payer.pubkey, result.mint, SystemAddresses.TOKEN_2022_PROGRAM
    )
    mint = await fetch_mint(ledger, result.mint)
    assert mint.supply == 100 * 10**9

    create_holder = ledger.transactions[1].instructions[-1]
    assert create_holder.program_id == SystemAddresses.ASSOCIATED_TOKEN_PROGRAM
    assert bytes(create_holder.data) == bytes([1])
    assert create_holder.accounts[5].pubkey == SystemAddresses.TOKEN_2022_PROGRAM


async def test_rent_is_estimated_for_layout_plus_metadata(ledger, make_config):
    result = await MintLauncher(ledger, make_config()).run()

    assert ledger.rent_queries == [result.budget.total_len]
    assert result.lamports == rent_exempt_minimum(result.budget.total_len)
    account = await ledger.get_account_info(result.mint)
    assert len(account.data) == result.budget.total_len


async def test_creation_is_one_atomic_transaction(ledger, make_config):
    result = await MintLauncher(ledger, make_config()).run()

    creation = ledger.transactions[0]
    assert len(creation.instructions) == 5
    assert set(creation.signer_pubkeys) == {make_config().payer.pubkey, result.mint}


async def test_metadata_round_trip_multiple_fields(ledger, make_config):
    additional = (
        ("description", "Testnet random tokens"),
        ("website", "https://example.com"),
        ("twitter", "@bottle"),
    )
    config = make_config(
        metadata=MetadataFields(
            name="Bottle Test Tokens",
            symbol="BTT",
            uri="https://example.com/btt.json",
            additional=additional,
        ),
        issue_amount=0,
    )
    result = await MintLauncher(ledger, config).run()

    assert result.issuance is None
    assert result.verified.metadata.uri == "https://example.com/btt.json"
    assert result.verified.metadata.additional_metadata == additional


async def test_optional_extensions_are_created(ledger, make_config):
    delegate = Keypair().pubkey()
    config = make_config(
        extensions=(
            ExtensionType.METADATA_POINTER,
            ExtensionType.MINT_CLOSE_AUTHORITY,
            ExtensionType.NON_TRANSFERABLE,
            ExtensionType.PERMANENT_DELEGATE,
        ),
        permanent_delegate=delegate,
    )
    result = await MintLauncher(ledger, config).run()

    extension_types = set(result.verified.mint.extension_types)
    assert {
        ExtensionType.METADATA_POINTER,
        ExtensionType.MINT_CLOSE_AUTHORITY,
        ExtensionType.NON_TRANSFERABLE,
        ExtensionType.PERMANENT_DELEGATE,
        ExtensionType.TOKEN_METADATA,
    } == extension_types
    assert result.verified.mint.get_extension_data(ExtensionType.PERMANENT_DELEGATE) == bytes(delegate)


async def test_separate_authorities(ledger, make_config):
    mint_authority = Wallet.generate()
    update_authority = Wallet.generate()
    config = make_config(mint_authority=mint_authority, update_authority=update_authority)
    result = await MintLauncher(ledger, config).run()

    assert result.verified.mint.mint_authority == mint_authority.pubkey
    assert result.verified.metadata.update_authority == update_authority.pubkey
    assert result.verified.metadata_pointer.authority == update_authority.pubkey
    assert result.issuance.holder.amount == 100 * 10**9


async def test_repeated_create_fails_with_already_exists(ledger, make_config):
    mint_keypair = Keypair()
    config = make_config(mint_keypair=mint_keypair, issue_amount=0)
    await MintLauncher(ledger, config).run()
    before = {address: bytes(account.data) for address, account in ledger.accounts.items()}

    with pytest.raises(AccountAlreadyExistsError) as exc_info:
        await MintLauncher(ledger, config).run()

    assert any("already in use" in line for line in exc_info.value.logs)
    after = {address: bytes(account.data) for address, account in ledger.accounts.items()}
    assert after == before


async def test_underfunded_metadata_write_rolls_back_everything(ledger, make_config, payer):
    mint_keypair = Keypair()
    mint = mint_keypair.pubkey()
    config = make_config()
    metadata = build_metadata_record(config, mint)
    budget = compute_size_budget(config.resolved_extensions, metadata)
    # Deposit covers only the extension layout, not the metadata envelope
    funded = FundedBudget(budget, rent_exempt_minimum(budget.mint_len))
    plan = MintInstructionBuilder(config).build(mint, funded)
    transaction = assemble(plan.instructions, payer.pubkey, [payer.keypair, mint_keypair])

    with pytest.raises(TransactionRejectedError) as exc_info:
        await ledger.send_and_confirm(transaction)

    assert "rent" in str(exc_info.value)
    assert await ledger.get_account_info(mint) is None


@pytest.mark.parametrize("wrong_decimals", [0, 6, 18])
@pytest.mark.parametrize("amount", [1, 100 * 10**9])
async def test_checked_issuance_rejects_wrong_decimals(ledger, make_config, payer, wrong_decimals, amount):
    result = await MintLauncher(ledger, make_config(issue_amount=0)).run()
    issuer = TokenIssuer(ledger, payer.keypair, payer.keypair)
    holder = await issuer.resolve_holder_account(result.mint, payer.pubkey)

    with pytest.raises(DecimalsMismatchError):
        await issuer.issue_checked(result.mint, holder, amount, wrong_decimals)

    mint = await fetch_mint(ledger, result.mint)
    assert mint.supply == 0


async def test_ledger_rejects_wrong_decimals_without_client_check(ledger, make_config, payer):
    from mint_launcher.token2022.instructions import mint_to_checked_instruction

    result = await MintLauncher(ledger, make_config(issue_amount=0)).run()
    issuer = TokenIssuer(ledger, payer.keypair, payer.keypair)
    holder = await issuer.resolve_holder_account(result.mint, payer.pubkey)
    transaction = assemble(
        [mint_to_checked_instruction(result.mint, holder.address, payer.pubkey, 100, 6)],
        payer.pubkey,
        [payer.keypair],
    )
    with pytest.raises(TransactionRejectedError, match="0x12"):
        await ledger.send_and_confirm(transaction)


async def test_holder_account_is_created_once(ledger, make_config, payer):
    result = await MintLauncher(ledger, make_config(issue_amount=0)).run()
    issuer = TokenIssuer(ledger, payer.keypair, payer.keypair)

    first = await issuer.resolve_holder_account(result.mint, payer.pubkey)
    second = await issuer.resolve_holder_account(result.mint, payer.pubkey)

    assert first.created is True
    assert second.created is False
    assert first.address == second.address


async def test_holder_for_another_owner(ledger, make_config, payer):
    owner = Keypair().pubkey()
    result = await MintLauncher(ledger, make_config(holder_owner=owner)).run()
    assert result.issuance.holder.owner == owner
    assert result.issuance.holder.amount == 100 * 10**9


async def test_verification_mismatch_is_reported(ledger, make_config, payer):
    result = await MintLauncher(ledger, make_config(issue_amount=0)).run()
    wrong = ExpectedMint(
        address=result.mint,
        decimals=6,
        mint_authority=payer.pubkey,
        freeze_authority=None,
        metadata=TokenMetadata(
            update_authority=payer.pubkey,
            mint=result.mint,
            name="Bottle Test Tokens",
            symbol="BOT",
        ),
    )
    with pytest.raises(VerificationError) as exc_info:
        await PostCreationVerifier(ledger).verify(wrong)

    mismatches = exc_info.value.mismatches
    assert mismatches["decimals"] == (6, 9)
    assert mismatches["metadata.symbol"] == ("BOT", "BTT")
    assert "metadata.additional_metadata" in mismatches
    assert not isinstance(exc_info.value, RpcError)


async def test_pointer_state_decoded_from_mint(ledger, make_config, payer):
    result = await MintLauncher(ledger, make_config(issue_amount=0)).run()
    mint = await fetch_mint(ledger, result.mint)
    pointer = get_metadata_pointer_state(mint)
    assert pointer.metadata_address == result.mint
    assert pointer.authority == payer.pubkey
    assert mint.metadata_pointer == pointer == result.verified.metadata_pointer


async def test_rpc_failure_aborts_before_submission(ledger, make_config):
    ledger.read_failures = 1
    launcher = MintLauncher(ledger, make_config())

    with pytest.raises(RpcError):
        await launcher.run()

    assert ledger.transactions == []
    assert launcher.lifecycle.stage == Stage.SIZED


async def test_stages_cannot_be_skipped(ledger, make_config):
    launcher = MintLauncher(ledger, make_config())
    prepared = await launcher.prepare()

    with pytest.raises(PipelineOrderError):
        await launcher.verify(prepared)
    assert ledger.transactions == []


async def test_prepare_does_not_submit(ledger, make_config):
    launcher = MintLauncher(ledger, make_config())
    prepared = await launcher.prepare()

    assert ledger.transactions == []
    assert launcher.lifecycle.stage == Stage.METADATA_UPDATED
    assert prepared.plan.labels[0] == "create_account"
    assert prepared.funded.lamports == rent_exempt_minimum(prepared.budget.total_len)


async def test_oversized_creation_is_rejected_before_sending(ledger, make_config):
    pairs = tuple((f"field_{i}", "x" * 190) for i in range(6))
    config = make_config(
        metadata=MetadataFields(name="Bottle Test Tokens", symbol="BTT", additional=pairs)
    )
    launcher = MintLauncher(ledger, config)

    with pytest.raises(LayoutError, match="packet limit"):
        await launcher.run()
    assert ledger.transactions == []


async def test_issuance_uses_configured_decimals(ledger, make_config):
    mint_keypair = Keypair()
    result = await MintLauncher(
        ledger, make_config(mint_keypair=mint_keypair, issue_amount=0)
    ).run()

    # Same mint, but the operator now expects 6 decimals
    launcher = MintLauncher(ledger, make_config(mint_keypair=mint_keypair, decimals=6))
    for stage in STAGE_ORDER[1 : STAGE_ORDER.index(Stage.VERIFIED) + 1]:
        launcher.lifecycle.advance(stage)

    with pytest.raises(DecimalsMismatchError):
        await launcher.issue(result.verified)
    mint = await fetch_mint(ledger, result.mint)
    assert mint.supply == 0
