"""Result models for bulk actions."""

from dataclasses import dataclass, field

SUCCESS = "success"
PARTIAL = "partial"
FAILURE = "failure"


@dataclass(frozen=True)
class ItemFailure:
    """A single item that could not be processed."""

    identifier: str
    reason: str


@dataclass
class BulkActionResult:
    """Aggregated outcome of a best-effort batch."""

    action: str
    success_count: int = 0
    failures: list[ItemFailure] = field(default_factory=list)
    published: bool = False
    publish_error: str | None = None

    @property
    def outcome(self) -> str:
        """Classify the result as success, partial or failure."""
        if not self.failures:
            return SUCCESS
        if self.success_count > 0:
            return PARTIAL
        return FAILURE

    @property
    def first_error(self) -> str | None:
        """Return the first actionable failure reason, if any."""
        if not self.failures:
            return None
        return self.failures[0].reason

    def summary(self) -> str:
        """Return a user-facing summary line."""
        if self.outcome == SUCCESS:
            return f"{self.action}: {self.success_count} image(s) updated."
        if self.outcome == PARTIAL:
            return (
                f"{self.action}: {self.success_count} succeeded, "
                f"{len(self.failures)} failed."
            )
        return f"{self.action} failed: {self.first_error}"
