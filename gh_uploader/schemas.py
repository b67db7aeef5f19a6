from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, TypeVar, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

ModelT = TypeVar("ModelT", bound=BaseModel)


class Asset(BaseModel):
    """Body of a 201 response from the asset upload endpoint."""

    url: str = ""


class ApiFieldError(BaseModel):
    resource: str = ""
    code: str = ""
    field: str = ""
    message: str | None = None

    def describe(self) -> str:
        location = ".".join(part for part in (self.resource, self.field) if part)
        text = f"{location}: {self.code}" if location else self.code
        if self.message:
            text = f"{text} ({self.message})"
        return text


class ApiError(BaseModel):
    """GitHub-style error body returned for any non-201 response."""

    message: str = ""
    request_id: str | None = None
    documentation_url: str | None = None
    errors: list[ApiFieldError] = Field(default_factory=list)

    @field_validator("errors", mode="before")
    @classmethod
    def _drop_malformed(cls, value: Any) -> list[Any]:
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, dict)]


def decode_body(model: type[ModelT], payload: Any) -> ModelT:
    """Validate ``payload`` into ``model``, falling back to an empty instance.

    Response bodies are not trusted to match the documented shape; anything
    that fails validation is treated as if the body were empty.
    """
    if not isinstance(payload, dict):
        return model()
    try:
        return model.model_validate(payload)
    except ValidationError:
        return model()


@dataclass(frozen=True)
class AssetUploaded:
    url: str


@dataclass(frozen=True)
class UploadFailed:
    status_code: int
    message: str
    request_id: str | None = None
    documentation_url: str | None = None
    errors: list[ApiFieldError] = field(default_factory=list)

    @classmethod
    def from_api_error(cls, status_code: int, error: ApiError) -> "UploadFailed":
        return cls(
            status_code=status_code,
            message=error.message,
            request_id=error.request_id,
            documentation_url=error.documentation_url,
            errors=list(error.errors),
        )


UploadResult = Union[AssetUploaded, UploadFailed]


__all__ = [
    "ApiError",
    "ApiFieldError",
    "Asset",
    "AssetUploaded",
    "UploadFailed",
    "UploadResult",
    "decode_body",
]
