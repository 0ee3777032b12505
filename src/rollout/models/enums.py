"""String enums for release, template and step vocabularies."""

from enum import StrEnum


class ReleaseType(StrEnum):
    ONBOARDING = "onboarding"
    RELEASE = "release"
    HOTFIX = "hotfix"


class ReleaseStatus(StrEnum):
    DRAFT = "draft"
    ACTIVE = "active"
    ARCHIVED = "archived"


class StepCategory(StrEnum):
    DEPLOY = "deploy"
    VERIFY = "verify"


class StepType(StrEnum):
    BASH = "bash"
    SQL = "sql"
    TEXT = "text"


class StepStatus(StrEnum):
    PENDING = "pending"
    DONE = "done"
    SKIPPED = "skipped"
    REVERTED = "reverted"
