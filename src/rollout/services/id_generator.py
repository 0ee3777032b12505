"""Prefixed ID generation for rollout entities."""

import uuid

CLUSTER_PREFIX = "cls_"
CUSTOMER_PREFIX = "cus_"
RELEASE_PREFIX = "rel_"
TEMPLATE_PREFIX = "tpl_"
STEP_PREFIX = "cst_"


def generate_id(prefix: str) -> str:
    """Return ``prefix`` followed by 16 random hex characters, e.g. ``rel_a1b2c3d4e5f6a7b8``."""
    return f"{prefix}{uuid.uuid4().hex[:16]}"
