import pytest
from fake_ledger import FakeLedger

from mint_launcher.core.wallet import Wallet
from mint_launcher.launcher.config import MetadataFields, MintConfig
from mint_launcher.token2022.extensions import ExtensionType

BOTTLE_METADATA = MetadataFields(
    name="Bottle Test Tokens",
    symbol="BTT",
    additional=(("description", "Testnet random tokens"),),
)


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def payer() -> Wallet:
    return Wallet.generate()


@pytest.fixture
def make_config(payer):
    def factory(**overrides) -> MintConfig:
        values = {
            "payer": payer,
            "decimals": 9,
            "metadata": BOTTLE_METADATA,
            "extensions": (ExtensionType.METADATA_POINTER,),
            "issue_amount": 100 * 10**9,
            "name": "bottle-test-tokens",
        }
        values.update(overrides)
        return MintConfig(**values)

    return factory
