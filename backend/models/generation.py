"""Generation models: requests, delivery events and the generated project."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import AliasChoices, BaseModel, Field, field_validator

from backend.config import settings

ENTRY_FILE = "src/App.tsx"


class GenerationRequest(BaseModel):
    """What the client sends to POST /api/generate-stream and /api/generate."""

    model_config = {"extra": "forbid", "frozen": True}

    prompt: str
    model: str = Field(
        default=settings.DEFAULT_MODEL,
        validation_alias=AliasChoices("model", "modelId"),
    )

    @field_validator("prompt")
    @classmethod
    def _prompt_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Prompt is required")
        if len(value) > settings.MAX_PROMPT_LENGTH:
            raise ValueError(f"Prompt must be at most {settings.MAX_PROMPT_LENGTH} characters")
        return value


class ModificationRequest(BaseModel):
    """What the client sends to POST /api/modify-code."""

    model_config = {"extra": "forbid", "frozen": True}

    code: str
    instruction: str
    model: str = Field(
        default=settings.DEFAULT_MODEL,
        validation_alias=AliasChoices("model", "modelId"),
    )

    @field_validator("code")
    @classmethod
    def _code_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Code is required")
        if len(value) > settings.MAX_CODE_LENGTH:
            raise ValueError(f"Code must be at most {settings.MAX_CODE_LENGTH} characters")
        return value

    @field_validator("instruction")
    @classmethod
    def _instruction_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Instruction is required")
        if len(value) > settings.MAX_PROMPT_LENGTH:
            raise ValueError(f"Instruction must be at most {settings.MAX_PROMPT_LENGTH} characters")
        return value


class ProjectPayload(BaseModel):
    """The generated project handed back on completion."""

    model_config = {"populate_by_name": True}

    files: dict[str, str]
    project_name: str = Field(alias="projectName")

    @field_validator("files")
    @classmethod
    def _has_entry_file(cls, value: dict[str, str]) -> dict[str, str]:
        if ENTRY_FILE not in value:
            raise ValueError(f"files must contain {ENTRY_FILE}")
        return value


# ---------------------------------------------------------------------------
# Delivery events (one per SSE data line)
# ---------------------------------------------------------------------------


class CharEvent(BaseModel):
    model_config = {"populate_by_name": True}

    type: Literal["char"] = "char"
    char: str
    total_length: int = Field(alias="totalLength", ge=1)


class CompleteEvent(BaseModel):
    type: Literal["complete"] = "complete"
    project: ProjectPayload


class ErrorEvent(BaseModel):
    model_config = {"populate_by_name": True}

    type: Literal["error"] = "error"
    error: str
    details: str = ""
    status_code: int = Field(alias="statusCode")
    kind: str


DeliveryEvent = Annotated[CharEvent | CompleteEvent | ErrorEvent, Field(discriminator="type")]


# ---------------------------------------------------------------------------
# Preview
# ---------------------------------------------------------------------------


class PreviewRequest(BaseModel):
    """What the client sends to POST /api/preview-code."""

    model_config = {"extra": "forbid"}

    code: str = Field(min_length=1)
    files: dict[str, str] = Field(default_factory=dict)
    device: Literal["desktop", "tablet", "mobile"] = "desktop"


class ModelInfo(BaseModel):
    """One entry of GET /api/models."""

    id: str
    name: str
    provider: str
    tiers: list[str]
