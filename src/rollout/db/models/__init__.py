"""SQLAlchemy ORM models - import all to register with Base.metadata."""

from rollout.db.models.cluster import ClusterRow
from rollout.db.models.customer import CustomerRow
from rollout.db.models.release import ReleaseRow
from rollout.db.models.step_template import StepTemplateRow
from rollout.db.models.customer_step import CustomerStepRow

__all__ = [
    "ClusterRow",
    "CustomerRow",
    "ReleaseRow",
    "StepTemplateRow",
    "CustomerStepRow",
]
