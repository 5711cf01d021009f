"""Data model for values emitted by the result producer.

A run yields a finite stream of ``ProgressEvent`` and ``OutputBatch``
values.  Batches are immutable once emitted; ownership passes to the
caller.
"""

from __future__ import annotations

from dataclasses import dataclass

from coverage_grid.core.exceptions import ContractError


@dataclass(frozen=True, slots=True)
class ProgressEvent:
    """Progress of one run.

    Attributes:
        processed: Units processed so far (candidates or lines).
        total: Total units in this run.
    """

    processed: int
    total: int

    def __post_init__(self) -> None:
        if self.total < 0 or not 0 <= self.processed <= self.total:
            msg = f"Invalid progress {self.processed}/{self.total}"
            raise ContractError(msg, stage="progress", code="PROGRESS_INVALID")

    @property
    def fraction(self) -> float:
        """Completed fraction in ``[0, 1]``; an empty run counts as complete."""
        if self.total == 0:
            return 1.0
        return self.processed / self.total


@dataclass(frozen=True, slots=True)
class OutputBatch:
    """A named, size-bounded group of formatted result lines.

    Attributes:
        name: Deterministic file name, e.g. ``"amur-oblast_part3.txt"``.
        lines: Formatted lines in point order.
        part: One-based batch number within the run.
    """

    name: str
    lines: tuple[str, ...]
    part: int = 1

    def __post_init__(self) -> None:
        object.__setattr__(self, "lines", tuple(self.lines))

    @property
    def content(self) -> str:
        """Lines joined with newlines (no trailing newline)."""
        return "\n".join(self.lines)
