"""
Hafez Quraan Backend — Progress Request/Response Schemas
==========================================================

What:  Contracts for POST /save-progress and GET /load-progress/{email}.

Design Decision:
    `email` is optional at the schema level so a missing email reaches
    ProgressService and is reported as `{"success": false, "error": ...}`
    with HTTP 400, the same as every other validation failure, instead of
    FastAPI's generic 422 body.

    Lists accept `null` from older clients and treat it as empty.
"""

from typing import Annotated, List, Optional

from pydantic import Field, field_validator

from hafez_api.schemas.common import CamelModel


# Lengths below match the column widths in models/
VerseKey = Annotated[str, Field(max_length=20)]


class SaveProgressRequest(CamelModel):
    """
    Full snapshot of a user's progress. The server replaces everything it
    stored before with exactly this content.
    """
    email: Optional[str] = Field(default=None, max_length=255, description="User identity")
    memorized: List[VerseKey] = Field(default_factory=list, description="Memorized verse keys")
    reviewed: List[VerseKey] = Field(default_factory=list, description="Reviewed verse keys")
    bookmarked: List[VerseKey] = Field(default_factory=list, description="Bookmarked verse keys")
    recited: List[int] = Field(default_factory=list, description="Recited page numbers")

    language: Optional[str] = Field(default=None, max_length=10, description="UI language code")
    reciter: Optional[str] = Field(default=None, max_length=100, description="Audio reciter identifier")
    last_view_mode: Optional[str] = Field(default=None, max_length=20, description="Last UI view mode")
    last_verse_index: Optional[int] = Field(default=None, description="Last reading position")

    @field_validator("memorized", "reviewed", "bookmarked", "recited", mode="before")
    @classmethod
    def null_list_as_empty(cls, v):
        return [] if v is None else v


class LoadProgressResponse(CamelModel):
    """
    Returned for known and unknown users alike; unknown users get empty lists
    and the default preferences.
    """
    success: bool = Field(default=True)
    memorized: List[str] = Field(default_factory=list)
    reviewed: List[str] = Field(default_factory=list)
    bookmarked: List[str] = Field(default_factory=list)
    recited: List[int] = Field(default_factory=list)
    language: str
    reciter: str
    last_view_mode: str
    last_verse_index: int
