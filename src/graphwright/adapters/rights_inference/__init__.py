"""Public interface for the rights-inference service adapter."""

from __future__ import annotations

from .client import HttpRightsInferenceGateway
from .schema import InferenceResponse

__all__ = ["HttpRightsInferenceGateway", "InferenceResponse"]
