"""
Ordered instruction plan for creating a Token-2022 mint with embedded metadata.

Order is fixed by the token program:

1. CreateAccount sized for the extension layout, funded for layout + metadata
2. Extension initializers (metadata pointer and any other fixed-size extension)
3. InitializeMint, after which extensions and size can no longer change
4. Token metadata Initialize, which grows the account in place
5. UpdateField, once per additional metadata pair
"""

from dataclasses import dataclass

from solders.instruction import Instruction
from solders.pubkey import Pubkey

from mint_launcher.core.errors import LayoutError, PipelineOrderError
from mint_launcher.launcher.config import MintConfig
from mint_launcher.launcher.lifecycle import Stage, validate_stage_sequence
from mint_launcher.launcher.sizing import FundedBudget
from mint_launcher.token2022 import instructions as ix
from mint_launcher.token2022.extensions import (
    SUPPORTED_MINT_EXTENSIONS,
    ExtensionType,
    get_mint_len,
)
from mint_launcher.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class PlannedInstruction:
    """One instruction tagged with the lifecycle stage it performs."""

    stage: Stage
    label: str
    instruction: Instruction


@dataclass(frozen=True)
class InstructionPlan:
    """The full, validated instruction sequence for one mint."""

    mint: Pubkey
    steps: tuple[PlannedInstruction, ...]

    @property
    def instructions(self) -> list[Instruction]:
        return [step.instruction for step in self.steps]

    @property
    def stages(self) -> tuple[Stage, ...]:
        return tuple(step.stage for step in self.steps)

    @property
    def labels(self) -> tuple[str, ...]:
        return tuple(step.label for step in self.steps)


class MintInstructionBuilder:
    """Builds the creation instructions for a mint described by a MintConfig."""

    def __init__(self, config: MintConfig):
        self.config = config

    def build(self, mint: Pubkey, funded: FundedBudget) -> InstructionPlan:
        """Build and validate the ordered instruction plan.

        Args:
            mint: Address of the mint account to create
            funded: Size budget and deposit from the rent estimator

        Returns:
            Validated instruction plan

        Raises:
            LayoutError: If the extension set or order is invalid
        """
        config = self.config
        extensions = funded.budget.extensions
        self._validate_extensions(extensions, funded)

        payer = config.payer.pubkey
        mint_authority = config.mint_authority_wallet.pubkey
        update_authority = config.update_authority_wallet.pubkey

        steps = [
            PlannedInstruction(
                Stage.FUNDED,
                "create_account",
                ix.create_mint_account_instruction(
                    payer, mint, funded.budget.mint_len, funded.lamports
                ),
            )
        ]
        steps.extend(self._extension_steps(mint, extensions))
        steps.append(
            PlannedInstruction(
                Stage.LAYOUT_INIT,
                "initialize_mint",
                ix.initialize_mint_instruction(
                    mint, config.decimals, mint_authority, config.freeze_authority
                ),
            )
        )
        steps.append(
            PlannedInstruction(
                Stage.METADATA_INIT,
                "initialize_metadata",
                ix.initialize_token_metadata_instruction(
                    metadata=mint,
                    update_authority=update_authority,
                    mint=mint,
                    mint_authority=mint_authority,
                    name=config.metadata.name,
                    symbol=config.metadata.symbol,
                    uri=config.metadata.uri,
                ),
            )
        )
        for key, value in config.metadata.additional:
            steps.append(
                PlannedInstruction(
                    Stage.METADATA_UPDATED,
                    f"update_field:{key}",
                    ix.update_token_metadata_field_instruction(
                        mint, update_authority, key, value
                    ),
                )
            )

        plan = InstructionPlan(mint=mint, steps=tuple(steps))
        self.validate_plan(plan)

        for index, step in enumerate(plan.steps):
            logger.info(f"Instruction {index}: {step.label} [{step.stage.value}]")
        return plan

    @staticmethod
    def validate_plan(plan: InstructionPlan) -> None:
        """Fail fast if instructions are not ordered by lifecycle stage.

        Raises:
            LayoutError: If the sequence violates the required order
        """
        try:
            validate_stage_sequence(plan.stages)
        except PipelineOrderError as e:
            raise LayoutError(f"Invalid instruction order: {e!s}") from e

        if plan.stages.count(Stage.LAYOUT_INIT) != 1 or plan.stages.count(Stage.FUNDED) != 1:
            raise LayoutError("Exactly one create_account and one initialize_mint are required")
        if "initialize_metadata_pointer" not in plan.labels:
            raise LayoutError("Metadata pointer must be initialized before the mint")

    def _validate_extensions(
        self, extensions: tuple[ExtensionType, ...], funded: FundedBudget
    ) -> None:
        unsupported = [e for e in extensions if e not in SUPPORTED_MINT_EXTENSIONS]
        if unsupported:
            raise LayoutError(
                f"Extensions cannot be initialized before the mint: "
                f"{[e.config_name for e in unsupported]}"
            )
        if ExtensionType.METADATA_POINTER not in extensions:
            raise LayoutError("Embedded metadata requires the metadata_pointer extension")
        if get_mint_len(extensions) != funded.budget.mint_len:
            raise LayoutError(
                f"Size budget was computed for a different extension set "
                f"({funded.budget.mint_len} != {get_mint_len(extensions)})"
            )

    def _extension_steps(
        self, mint: Pubkey, extensions: tuple[ExtensionType, ...]
    ) -> list[PlannedInstruction]:
        config = self.config
        update_authority = config.update_authority_wallet.pubkey
        steps = []

        for extension in extensions:
            if extension == ExtensionType.METADATA_POINTER:
                instruction = ix.initialize_metadata_pointer_instruction(
                    mint, update_authority, mint
                )
            elif extension == ExtensionType.MINT_CLOSE_AUTHORITY:
                close_authority = config.close_authority or config.mint_authority_wallet.pubkey
                instruction = ix.initialize_mint_close_authority_instruction(mint, close_authority)
            elif extension == ExtensionType.NON_TRANSFERABLE:
                instruction = ix.initialize_non_transferable_mint_instruction(mint)
            elif extension == ExtensionType.PERMANENT_DELEGATE:
                if config.permanent_delegate is None:
                    raise LayoutError("permanent_delegate extension needs a delegate address")
                instruction = ix.initialize_permanent_delegate_instruction(
                    mint, config.permanent_delegate
                )
            else:
                raise LayoutError(f"No initializer for extension {extension.config_name}")

            steps.append(
                PlannedInstruction(
                    Stage.EXTENSIONS_INIT, f"initialize_{extension.config_name}", instruction
                )
            )
        return steps
