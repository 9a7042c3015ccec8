"""
Mint lifecycle stages and the tracker that enforces their order.
"""

from enum import Enum

from mint_launcher.core.errors import PipelineOrderError
from mint_launcher.utils.logger import get_logger

logger = get_logger(__name__)


class Stage(Enum):
    """Stages a mint passes through, in the only order they may occur."""

    PENDING = "pending"
    SIZED = "sized"
    FUNDED = "funded"
    EXTENSIONS_INIT = "extensions_init"
    LAYOUT_INIT = "layout_init"
    METADATA_INIT = "metadata_init"
    METADATA_UPDATED = "metadata_updated"
    SUBMITTED = "submitted"
    VERIFIED = "verified"
    ISSUED = "issued"

    @property
    def position(self) -> int:
        return STAGE_ORDER.index(self)


STAGE_ORDER: tuple[Stage, ...] = tuple(Stage)

# Stages that correspond to instructions inside the creation transaction
INSTRUCTION_STAGES: tuple[Stage, ...] = (
    Stage.FUNDED,
    Stage.EXTENSIONS_INIT,
    Stage.LAYOUT_INIT,
    Stage.METADATA_INIT,
    Stage.METADATA_UPDATED,
)


class MintLifecycle:
    """Tracks the current stage of one mint and rejects illegal transitions."""

    def __init__(self, mint_label: str = "mint"):
        self.mint_label = mint_label
        self._stage = Stage.PENDING
        self._history: list[Stage] = [Stage.PENDING]

    @property
    def stage(self) -> Stage:
        return self._stage

    @property
    def history(self) -> tuple[Stage, ...]:
        return tuple(self._history)

    def require(self, stage: Stage) -> None:
        """Raise unless the lifecycle has reached at least `stage`."""
        if self._stage.position < stage.position:
            raise PipelineOrderError(
                f"{self.mint_label}: requires stage {stage.value}, "
                f"currently {self._stage.value}"
            )

    def advance(self, stage: Stage) -> None:
        """Move to `stage`, which must be the immediate successor of the current one.

        Raises:
            PipelineOrderError: If the transition skips or repeats a stage
        """
        expected_position = self._stage.position + 1
        if stage.position != expected_position:
            expected = (
                STAGE_ORDER[expected_position].value
                if expected_position < len(STAGE_ORDER)
                else "none"
            )
            raise PipelineOrderError(
                f"{self.mint_label}: cannot move from {self._stage.value} to "
                f"{stage.value}; next stage is {expected}"
            )
        self._stage = stage
        self._history.append(stage)
        logger.debug(f"{self.mint_label}: stage -> {stage.value}")


def validate_stage_sequence(stages: list[Stage] | tuple[Stage, ...]) -> None:
    """Check that instruction stages are non-decreasing and each required stage appears.

    Several instructions may share a stage (e.g. multiple extension
    initializers), but no instruction may precede one of an earlier stage.
    EXTENSIONS_INIT and METADATA_UPDATED entries are optional in general;
    the builder decides which ones it requires.

    Raises:
        PipelineOrderError: If the sequence is out of order
    """
    previous: Stage | None = None
    for index, stage in enumerate(stages):
        if stage not in INSTRUCTION_STAGES:
            raise PipelineOrderError(
                f"Instruction {index} is tagged with non-instruction stage {stage.value}"
            )
        if previous is not None and stage.position < previous.position:
            raise PipelineOrderError(
                f"Instruction {index} ({stage.value}) is placed after {previous.value}"
            )
        previous = stage

    for required in (Stage.FUNDED, Stage.LAYOUT_INIT, Stage.METADATA_INIT):
        if required not in stages:
            raise PipelineOrderError(f"Instruction sequence is missing stage {required.value}")
