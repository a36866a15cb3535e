"""DTOs for cascading deletion runs."""

from dataclasses import dataclass


@dataclass(frozen=True)
class DeletionResult:
    """Outcome of one cascading delete.

    A failed run may still have committed some batches; those documents stay
    deleted and re-running the whole deletion is safe.
    """

    root_path: str
    succeeded: bool
    commits: int = 0
    """Number of batches committed successfully."""

    deleted: int = 0
    """Delete operations included in successful commits."""

    already_deleted: bool = False
    """True when the root did not exist at the start of the run."""

    error: Exception | None = None

    def __bool__(self) -> bool:
        return self.succeeded
