from typing import List
from fastapi import APIRouter, Depends
from sqlmodel import Session

from edfolio.api import deps
from edfolio.db.session import get_db
from edfolio.models.user import User
from edfolio.schemas.share import SharedPageRead
from edfolio.services.shares import list_shared_with_user

router = APIRouter()


@router.get("/mine", response_model=List[SharedPageRead])
def list_my_shares(
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """Pages other users have shared with the current user, newest grant first."""
    return [SharedPageRead.model_validate(page) for page in list_shared_with_user(db, current_user)]
