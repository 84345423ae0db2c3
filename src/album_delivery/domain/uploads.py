"""Upload batch domain models."""

from dataclasses import dataclass, field

IDLE = "idle"
CHECKING_QUOTA = "checking-quota"
REJECTED = "rejected"
UPLOADING = "uploading"
PARTIALLY_FAILED = "partially-failed"
COMPLETED = "completed"
ABORTED = "aborted"

QUEUED = "queued"
UPLOADED = "uploaded"
FAILED = "failed"


@dataclass(frozen=True)
class LocalFile:
    """A file selected locally for upload."""

    file_name: str
    content: bytes
    content_type: str = "image/jpeg"

    @property
    def size(self) -> int:
        """Return the file size in bytes."""
        return len(self.content)


@dataclass
class UploadItem:
    """A single file tracked by an upload batch."""

    id: str
    file: LocalFile
    status: str = QUEUED
    preview_url: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class UploadProgress:
    """Snapshot of batch progress."""

    state: str
    total: int
    uploaded: int
    failed: int

    @property
    def fraction(self) -> float:
        """Return completion as a value in [0, 1]."""
        if self.total == 0:
            return 0.0
        return self.uploaded / self.total


@dataclass
class UploadReport:
    """Final outcome of one upload session run."""

    state: str
    total: int
    uploaded: int
    failed_files: list[str] = field(default_factory=list)
    notified: bool = False

    @property
    def outcome(self) -> str:
        """Classify the run as success, partial, failure or aborted."""
        if self.state == ABORTED:
            return ABORTED
        if not self.failed_files:
            return "success"
        if self.uploaded > 0:
            return "partial"
        return "failure"

    def summary(self) -> str:
        """Return a user-facing summary line."""
        if self.state == ABORTED:
            return (
                f"Upload cancelled: {self.uploaded} of {self.total} image(s) "
                "were uploaded before stopping."
            )
        if not self.failed_files:
            return f"Uploaded {self.uploaded} image(s)."
        return (
            f"Uploaded {self.uploaded} of {self.total} image(s); "
            f"{len(self.failed_files)} failed."
        )
