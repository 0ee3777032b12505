"""Pydantic models for customer steps, their lifecycle requests and read-side projections."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from rollout.models.enums import StepCategory, StepStatus, StepType
from rollout.models.inventory import Cluster, Customer
from rollout.models.release import StepTemplate


class CustomerStep(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    step_id: str
    release_id: str
    customer_id: str
    template_id: str | None = None
    name: str
    category: StepCategory
    type: StepType
    content: str
    order_index: float
    status: StepStatus
    executed_at: datetime | None = None
    executed_by: str | None = None
    skip_reason: str | None = None
    notes: str | None = None
    is_custom: bool
    is_overridden: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None


class MarkDoneRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    notes: str | None = None
    executed_by: str | None = Field(None, max_length=200)


class SkipRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    reason: str
    executed_by: str | None = Field(None, max_length=200)

    @field_validator("reason")
    @classmethod
    def reason_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("a skip reason is required")
        return v


class RevertRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    reason: str | None = None


class OverrideRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    content: str
    name: str | None = Field(None, min_length=1, max_length=200)


class CustomStepInput(BaseModel):
    """An ad-hoc step for one customer.

    ``order_index`` may be fractional, e.g. the midpoint of two neighbours.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=200)
    category: StepCategory
    type: StepType
    content: str
    order_index: float
    add_to_template: bool = False
    description: str | None = Field(None, max_length=5000)


class CustomStepCreate(CustomStepInput):
    customer_id: str


class CustomStepUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(None, min_length=1, max_length=200)
    category: StepCategory | None = None
    type: StepType | None = None
    content: str | None = None
    order_index: float | None = None
    notes: str | None = None


class BulkDoneRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    step_ids: list[str] = Field(..., min_length=1)
    notes: str | None = None
    executed_by: str | None = Field(None, max_length=200)


class BulkResult(BaseModel):
    succeeded: list[str] = Field(default_factory=list)
    # step id -> error code
    failed: dict[str, str] = Field(default_factory=dict)


class StepStats(BaseModel):
    total: int
    done: int
    skipped: int
    pending: int
    reverted: int
    percentage: int


class StepDetail(BaseModel):
    step: CustomerStep
    customer: Customer
    cluster: Cluster
    template: StepTemplate | None = None


class CustomerSteps(BaseModel):
    customer: Customer
    steps: list[CustomerStep]


class MatrixRow(BaseModel):
    """One distinct step identity on the matrix row axis."""

    key: str
    template_id: str | None = None
    name: str
    category: StepCategory
    order_index: float
    is_custom: bool
    # customer id -> step id, None where that customer has no such step
    cells: dict[str, str | None]


class ClusterSteps(BaseModel):
    cluster: Cluster
    customers: list[CustomerSteps]
    rows: dict[StepCategory, list[MatrixRow]]
