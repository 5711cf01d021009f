"""Error taxonomy shared by every coverage stage and collaborator.

Each domain error derives from ``PipelineError`` and names the stage that
raised it, a stable code, and whether a retry can help.  Errors that carry
run context (the radius that collapsed the region, the number of points
found) list those attribute names in ``context_fields`` so that hosts can
report them without parsing the message.

Categories
----------
- ``ValidationError``: bad input, never retryable.
- ``TransientError``: lookup or network failures, retryable.
- ``PermanentError``: the input is valid but no result exists.
- ``ContractError``: a stage emitted a malformed payload.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base exception for all coverage errors.

    Attributes:
        message: Human-readable error description.
        stage: Stage where the error occurred (e.g. ``"offset_polygon"``).
        code: Machine-readable error code (e.g. ``"REGION_TOO_SMALL"``).
        retryable: Whether the caller may retry the operation.
    """

    #: Stage used when none is passed to the constructor.
    default_stage: str = ""
    #: Code used when none is passed to the constructor.
    default_code: str = ""
    #: Instance attributes reported under ``context`` by ``to_error_dict``.
    context_fields: tuple[str, ...] = ()

    def __init__(
        self,
        message: str = "",
        *,
        stage: str = "",
        code: str = "",
        retryable: bool = False,
    ) -> None:
        self.message = message
        self.stage = stage or self.default_stage
        self.code = code or self.default_code
        self.retryable = retryable
        super().__init__(message)

    @property
    def category(self) -> str:
        """Category name of the concrete class."""
        if isinstance(self, ContractError):
            return "contract"
        if isinstance(self, ValidationError):
            return "validation"
        if isinstance(self, TransientError):
            return "transient"
        if isinstance(self, PermanentError):
            return "permanent"
        return "transient" if self.retryable else "permanent"

    @property
    def context(self) -> dict[str, object]:
        """Run context named by ``context_fields``; unset attributes are skipped."""
        return {name: getattr(self, name) for name in self.context_fields if hasattr(self, name)}

    def to_error_dict(self) -> dict[str, object]:
        """Structured payload for hosts, with stable keys."""
        return {
            "category": self.category,
            "stage": self.stage,
            "code": self.code,
            "message": self.message,
            "retryable": self.retryable,
            "context": self.context,
        }


# ---------------------------------------------------------------------------
# Category base classes
# ---------------------------------------------------------------------------


class ValidationError(PipelineError):
    """Input or model validation failure. Never retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class TransientError(PipelineError):
    """Failure of an external lookup that may succeed on retry."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", True)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class PermanentError(PipelineError):
    """Valid input with no possible result. Not retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class ContractError(PipelineError):
    """Malformed payload passed between stages. Never retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]
