"""Business logic of the eight pipeline stages."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .deliverables import DeliverablesHandler
from .enrichment import EmbeddingsHandler, LiteracyHandler
from .extraction import LexiconHandler, PoolsHandler
from .graph import GraphHandler
from .intake import IntakeHandler
from .rights import RightsHandler

if TYPE_CHECKING:
    from graphwright.domain.model import Stage

    from ..stages import StageHandler


def build_default_handlers() -> dict[Stage, StageHandler]:
    handlers: tuple[StageHandler, ...] = (
        IntakeHandler(),
        RightsHandler(),
        LexiconHandler(),
        PoolsHandler(),
        GraphHandler(),
        EmbeddingsHandler(),
        LiteracyHandler(),
        DeliverablesHandler(),
    )
    return {handler.stage: handler for handler in handlers}


__all__ = [
    "DeliverablesHandler",
    "EmbeddingsHandler",
    "GraphHandler",
    "IntakeHandler",
    "LexiconHandler",
    "LiteracyHandler",
    "PoolsHandler",
    "RightsHandler",
    "build_default_handlers",
]
