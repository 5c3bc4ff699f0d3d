"""
Pydantic models for uiforge.

All data shapes defined here. No imports from routes or services.
"""

from backend.models.generation import (
    ENTRY_FILE,
    CharEvent,
    CompleteEvent,
    DeliveryEvent,
    ErrorEvent,
    GenerationRequest,
    ModificationRequest,
    ModelInfo,
    PreviewRequest,
    ProjectPayload,
)

__all__ = [
    "ENTRY_FILE",
    # Requests
    "GenerationRequest",
    "ModificationRequest",
    "PreviewRequest",
    # Delivery events
    "CharEvent",
    "CompleteEvent",
    "ErrorEvent",
    "DeliveryEvent",
    # Responses
    "ProjectPayload",
    "ModelInfo",
]
