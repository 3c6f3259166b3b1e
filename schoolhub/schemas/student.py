"""
Student aggregate schema.

The student document embeds the absence list (AD dates) and the leave
collection (codec-encoded strings). ``version`` increases on every
successful write and is compared on update to detect lost updates.
"""

from typing import List, Optional

from pydantic import Field, field_validator

from schoolhub.schemas.common.base import DocumentSchema

__all__ = ["StudentAggregate"]


class StudentAggregate(DocumentSchema):
    """Student document as read from and written to the store."""

    document_id: str = Field(..., alias="$id", description="Store document id")
    student_id: str = Field(..., alias="id", description="Student custom id")
    name: Optional[str] = None
    parent_id: Optional[str] = Field(None, description="Parent custom id")
    faculty_id: Optional[str] = None
    class_name: Optional[str] = Field(None, alias="class")
    section: Optional[str] = None
    absent: List[str] = Field(default_factory=list, description="Absence dates (AD)")
    leave: List[str] = Field(default_factory=list, description="Encoded leave entries")
    version: int = Field(default=0, ge=0)

    @field_validator("absent", "leave", mode="before")
    @classmethod
    def none_as_empty(cls, v):
        return [] if v is None else v

    def to_document(self) -> dict:
        """Wire form of the aggregate."""
        return self.model_dump(by_alias=True, exclude_none=True)
