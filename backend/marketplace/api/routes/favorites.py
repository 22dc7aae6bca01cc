from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.core.database import get_db
from marketplace.core.deps import get_current_user
from marketplace.models.user import User
from marketplace.schemas.property import PropertyResponse
from marketplace.services.favorites import list_favorite_properties

router = APIRouter(prefix="/favorites", tags=["favorites"])


@router.get("", response_model=list[PropertyResponse])
def list_favorites(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return list_favorite_properties(db, current_user)
