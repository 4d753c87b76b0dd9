"""Error taxonomy shared by the pipeline, the glossary and graph assembly."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping


class PipelineError(Exception):
    """Base class for errors raised while driving a pipeline run."""

    def __init__(self, message: str, *, details: Mapping[str, object] | None = None) -> None:
        super().__init__(message)
        self.details: dict[str, object] = dict(details or {})


class TransientError(PipelineError):
    """An external service or network failure that is worth retrying."""


class InvalidDataError(PipelineError):
    """A stage produced implausible output; retrying will not help."""


ValidationError = InvalidDataError


class MissingRightsError(PipelineError):
    """An entity has no rights reference and must be kept out of the graph."""


class PipelineAbortError(PipelineError):
    """Operator-requested abort; the run fails regardless of retry budget."""


class IllegalTransitionError(PipelineError):
    """A run status change that the state machine does not allow."""


class ConcurrentUpdateError(PipelineError):
    """Another worker changed the run between our read and our write."""


class RunNotFoundError(PipelineError):
    """No pipeline run exists for the given identifier."""


class VerbError(ValueError):
    """Base class for relationship vocabulary violations."""


class UnknownVerbError(VerbError):
    """The verb is not part of the closed glossary."""


class SelfLoopError(VerbError):
    """A relationship whose source and target are the same node."""


class PoolConstraintError(VerbError):
    """The endpoints of a relationship are outside the verb's allowed pools."""


class ConstraintViolationError(RuntimeError):
    """A graph write broke a declared schema constraint."""
