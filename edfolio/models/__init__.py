from .user import User
from .folio import Folio, Folder
from .note import Note
from .published_page import PublishedPage
from .page_share import PageShare, SharePermission, ShareStatus
from .page_collaborator import PageCollaborator, CollaboratorRole

__all__ = [
    "User",
    "Folio", "Folder",
    "Note",
    "PublishedPage",
    "PageShare", "SharePermission", "ShareStatus",
    "PageCollaborator", "CollaboratorRole",
]
