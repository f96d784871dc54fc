from typing import List
from fastapi import APIRouter, Depends, status
from sqlmodel import Session, select

from edfolio.api import deps
from edfolio.db.session import get_db
from edfolio.models.folio import Folio, FolioCreate, FolioRead
from edfolio.models.user import User

router = APIRouter()


@router.get("", response_model=List[FolioRead])
def list_folios(
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """List the current user's folios, oldest first."""
    statement = select(Folio).where(Folio.owner_id == current_user.id).order_by(Folio.created_at, Folio.id)
    return db.exec(statement).all()


@router.post("", response_model=FolioRead, status_code=status.HTTP_201_CREATED)
def create_folio(
    folio_in: FolioCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    folio = Folio(name=folio_in.name, owner_id=current_user.id)
    db.add(folio)
    db.commit()
    db.refresh(folio)
    return folio
