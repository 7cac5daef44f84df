"""
Attachment reclamation result models for Lorekeeper.

This module defines the data structures returned by storage collaborators and
by the attachment reclaimer.
"""

from typing import List, Optional

from pydantic import BaseModel, Field


class DeletionResult(BaseModel):
    """
    The settled outcome of one deletion attempt.
    """

    url: str = Field(
        ...,
        description="The attachment URL the deletion targeted"
    )

    success: bool = Field(
        ...,
        description="True if the object is gone after the attempt"
    )

    reason: Optional[str] = Field(
        default=None,
        description="Failure reason reported by the collaborator"
    )

    already_absent: bool = Field(
        default=False,
        description="True if storage reported the object did not exist"
    )


class ReclamationPlan(BaseModel):
    """
    The attachments a document edit made unreferenced.
    """

    removed: List[str] = Field(
        default_factory=list,
        description="URLs referenced by the old document but not by the new one"
    )

    targets: List[str] = Field(
        default_factory=list,
        description="Removed URLs inside the owned storage domain, to be deleted"
    )

    skipped: List[str] = Field(
        default_factory=list,
        description="Removed URLs outside the owned storage domain, never deleted"
    )


class ReclaimReport(BaseModel):
    """
    Aggregate report of a reclamation run.
    """

    removed: List[str] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)
    results: List[DeletionResult] = Field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for result in self.results if result.success)

    @property
    def failed(self) -> int:
        return sum(1 for result in self.results if not result.success)

    @property
    def failures(self) -> List[DeletionResult]:
        return [result for result in self.results if not result.success]

    def summary(self) -> str:
        return (
            f"{len(self.removed)} removed, {len(self.skipped)} skipped, "
            f"{self.succeeded} deleted, {self.failed} failed"
        )
