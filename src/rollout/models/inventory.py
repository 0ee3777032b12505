"""Pydantic models for clusters and customers."""

from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class ClusterCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=200)
    kubeconfig_path: str | None = Field(None, max_length=1000)
    description: str | None = Field(None, max_length=5000)
    metadata: dict | None = None


class ClusterUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(None, min_length=1, max_length=200)
    kubeconfig_path: str | None = Field(None, max_length=1000)
    description: str | None = Field(None, max_length=5000)
    metadata: dict | None = None

    @field_validator("name")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("may be omitted but not set to null")
        return v


class Cluster(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    cluster_id: str
    name: str
    kubeconfig_path: str | None = None
    description: str | None = None
    is_active: bool
    metadata: dict | None = Field(None, validation_alias=AliasChoices("metadata_", "metadata"))
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CustomerCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    cluster_id: str
    # Kubernetes namespace names are DNS-1123 labels
    namespace: str = Field(..., pattern=r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$", max_length=63)
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    metadata: dict | None = None


class CustomerUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    cluster_id: str | None = None
    namespace: str | None = Field(None, pattern=r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$", max_length=63)
    name: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    metadata: dict | None = None

    @field_validator("cluster_id", "namespace", "name")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("may be omitted but not set to null")
        return v


class Customer(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    customer_id: str
    cluster_id: str
    namespace: str
    name: str
    description: str | None = None
    is_active: bool
    metadata: dict | None = Field(None, validation_alias=AliasChoices("metadata_", "metadata"))
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CustomerWithCluster(Customer):
    cluster: Cluster


class ClusterWithCustomers(Cluster):
    customers: list[Customer] = Field(default_factory=list)


class ClusterCustomers(BaseModel):
    """Active customers of one cluster."""

    cluster: Cluster
    customers: list[Customer]
