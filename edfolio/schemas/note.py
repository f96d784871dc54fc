from pydantic import BaseModel, Field
from typing import Any, Dict, Optional
from datetime import datetime


class NoteCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    content: Optional[Dict[str, Any]] = None
    # Defaults to the user's first folio
    folio_id: Optional[int] = None
    folder_id: Optional[int] = None


class NoteUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    content: Optional[Dict[str, Any]] = None


class NoteRead(BaseModel):
    id: int
    title: str
    content: Optional[Dict[str, Any]] = None
    folio_id: int
    folder_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class NoteAccessMeta(BaseModel):
    """How the caller reached the note."""
    access_level: str
    is_owner: bool
    collaborator_role: Optional[str] = None
    can_edit: bool


class NoteDetail(BaseModel):
    data: NoteRead
    meta: NoteAccessMeta


class NoteCloneRequest(BaseModel):
    # Omitted: keep the source folder when cloning within the same folio, else the folio root
    target_folder_id: Optional[int] = None
    access_token: Optional[str] = None


class NoteCloneResult(BaseModel):
    note_id: int
    title: str
    redirect_url: str


class NoteCloned(BaseModel):
    data: NoteCloneResult
