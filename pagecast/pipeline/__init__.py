"""Pipeline orchestration package.

This package contains the stage machine, per-entry locking, status derivation,
and the `PagecastPipeline` facade used by the CLI.
"""

from .orchestrator import PagecastPipeline
from .stages import Stage, StageFailure, StageOutcome, next_stage
from .status import derive_status

__all__ = [
    "PagecastPipeline",
    "Stage",
    "StageFailure",
    "StageOutcome",
    "derive_status",
    "next_stage",
]
