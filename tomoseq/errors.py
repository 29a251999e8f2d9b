"""Error taxonomy for tomo-seq peak-gene analysis."""

from __future__ import annotations


class TomoseqError(ValueError):
    """Base error carrying the pipeline stage and the offending entity."""

    def __init__(
        self,
        message: str,
        *,
        stage: str | None = None,
        entity: str | None = None,
    ) -> None:
        self.stage = stage
        self.entity = entity
        self.reason = str(message)
        prefix = []
        if stage is not None:
            prefix.append(f"stage={stage}")
        if entity is not None:
            prefix.append(f"entity={entity}")
        if prefix:
            message = f"[{' '.join(prefix)}] {message}"
        super().__init__(message)


class InvalidInputError(TomoseqError):
    """Malformed or missing-data input (non-finite values, bad labels, empty matrix)."""


class DegenerateInputError(TomoseqError):
    """Statistically undefined operation (zero library size, zero-variance gene)."""


class InvalidParameterError(TomoseqError):
    """Out-of-domain parameter value."""
