"""
Pydantic models for mirror upsert payloads.

Every upsert is validated as a whole before anything is written:
- Required fields present, with the right JSON types (no coercion)
- Ledger ids positive and within BIGINT range, priority in 0..3
- Completion triple consistent with the completed flag
"""

from typing import Optional, Type, TypeVar, Union, Dict, Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError as PydanticValidationError,
    field_validator,
    model_validator,
)

from ..database.exceptions import ValidationError

# Largest value a signed BIGINT column holds
MAX_BIGINT = 2**63 - 1


class UpsertModel(BaseModel):
    """Base for upsert payloads: strict types, unknown keys ignored."""
    model_config = ConfigDict(strict=True, extra="ignore")


# ============================================
# CIRCLES
# ============================================

class CircleUpsert(UpsertModel):
    """Circle snapshot from the ledger (POST /circles/upsert)."""
    id: int = Field(..., gt=0, le=MAX_BIGINT)
    name: str = Field(..., min_length=1, max_length=255)
    owner: str = Field(..., min_length=1, max_length=255)
    tx_hash: Optional[str] = Field(None, max_length=128)

    @field_validator("name", "owner")
    @classmethod
    def validate_not_blank(cls, v):
        stripped = v.strip()
        if not stripped:
            raise ValueError("cannot be empty after stripping whitespace")
        return stripped


# ============================================
# MEMBERS
# ============================================

class MemberUpsert(UpsertModel):
    """Membership snapshot (POST /members/upsert).

    ``is_owner`` and ``is_active`` are optional; when omitted on an existing
    row the stored value is kept.
    """
    circle_id: int = Field(..., gt=0, le=MAX_BIGINT)
    address: str = Field(..., min_length=1, max_length=255)
    is_owner: Optional[bool] = None
    is_active: Optional[bool] = None
    tx_hash: Optional[str] = Field(None, max_length=128)

    @field_validator("address")
    @classmethod
    def validate_address(cls, v):
        stripped = v.strip()
        if not stripped:
            raise ValueError("address cannot be empty")
        return stripped


# ============================================
# TASKS
# ============================================

class TaskUpsert(UpsertModel):
    """Full task record (POST /tasks/upsert)."""
    id: int = Field(..., gt=0, le=MAX_BIGINT)
    circle_id: int = Field(..., gt=0, le=MAX_BIGINT)
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = Field(None, max_length=5000)
    assigned_to: str = Field(..., min_length=1, max_length=255)
    created_by: str = Field(..., min_length=1, max_length=255)
    priority: int = Field(1, ge=0, le=3)
    completed: bool
    completed_by: Optional[str] = Field(None, max_length=255)
    completed_at: Optional[int] = Field(None, ge=0, le=MAX_BIGINT)
    tx_hash: Optional[str] = Field(None, max_length=128)
    completion_tx_hash: Optional[str] = Field(None, max_length=128)

    @field_validator("title", "assigned_to", "created_by")
    @classmethod
    def validate_not_blank(cls, v):
        stripped = v.strip()
        if not stripped:
            raise ValueError("cannot be empty after stripping whitespace")
        return stripped

    @model_validator(mode="after")
    def validate_completion(self):
        if self.completed:
            if not self.completed_by or self.completed_at is None:
                raise ValueError("completed tasks require completed_by and completed_at")
        elif self.completed_by is not None or self.completed_at is not None:
            raise ValueError("open tasks cannot carry completed_by or completed_at")
        return self


# ============================================
# HELPERS
# ============================================

ModelT = TypeVar("ModelT", bound=BaseModel)


def format_validation_error(error: PydanticValidationError) -> str:
    """Flatten pydantic errors into one readable message."""
    parts = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return "; ".join(parts)


def parse_payload(model_cls: Type[ModelT], data: Union[ModelT, Dict[str, Any]]) -> ModelT:
    """Validate raw upsert input, raising the mirror ValidationError on failure."""
    if isinstance(data, model_cls):
        return data
    if not isinstance(data, dict):
        raise ValidationError(f"{model_cls.__name__} payload must be a JSON object")
    try:
        return model_cls.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(format_validation_error(e)) from e
