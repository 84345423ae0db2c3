"""Storage quota domain models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class QuotaCheck:
    """Result of an upload capacity precheck."""

    can_upload: bool
    remaining_gb: float | None = None


@dataclass(frozen=True)
class StorageStats:
    """Tenant storage usage and plan information."""

    plan_name: str
    storage_used_gb: float
    storage_limit_gb: float
    percentage_used: float
    is_near_limit: bool
    is_over_limit: bool
