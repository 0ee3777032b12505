"""Pydantic models for releases and step templates."""

from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from rollout.models.enums import ReleaseStatus, ReleaseType, StepCategory, StepType


class ReleaseCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=200)
    type: ReleaseType
    version_number: str | None = Field(None, max_length=50)
    release_date: datetime | None = None
    description: str | None = Field(None, max_length=5000)
    metadata: dict | None = None


class ReleaseUpdate(BaseModel):
    """Editable release fields; status moves only through activate/archive."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(None, min_length=1, max_length=200)
    type: ReleaseType | None = None
    version_number: str | None = Field(None, max_length=50)
    release_date: datetime | None = None
    description: str | None = Field(None, max_length=5000)
    metadata: dict | None = None

    @field_validator("name", "type")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("may be omitted but not set to null")
        return v


class StepTemplate(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    template_id: str
    release_id: str
    name: str
    category: StepCategory
    type: StepType
    content: str
    order_index: int
    description: str | None = None
    created_at: datetime | None = None


class Release(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    release_id: str
    name: str
    type: ReleaseType
    status: ReleaseStatus
    version_number: str | None = None
    release_date: datetime | None = None
    description: str | None = None
    metadata: dict | None = Field(None, validation_alias=AliasChoices("metadata_", "metadata"))
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ReleaseWithTemplates(Release):
    templates: list[StepTemplate] = Field(default_factory=list)


class TemplateCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=200)
    category: StepCategory
    type: StepType
    content: str
    description: str | None = Field(None, max_length=5000)


class TemplateUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(None, min_length=1, max_length=200)
    type: StepType | None = None
    content: str | None = None
    description: str | None = Field(None, max_length=5000)


class ReorderRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    release_id: str
    category: StepCategory
    ordered_ids: list[str] = Field(..., min_length=1)


class ActivateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    # None targets every active customer
    customer_ids: list[str] | None = None


class AddCustomersRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    customer_ids: list[str] = Field(..., min_length=1)


class CloneRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=200)


class ActivationResult(BaseModel):
    release_id: str
    customer_ids: list[str]
    steps_created: int


class DashboardStats(BaseModel):
    total_releases: int
    active_releases: int
    pending_steps: int
    done_steps: int
    skipped_steps: int
