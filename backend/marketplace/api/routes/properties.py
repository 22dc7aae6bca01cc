from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.core.database import get_db
from marketplace.core.deps import get_current_user
from marketplace.models.user import User
from marketplace.schemas.property import (
    CloseDealRequest,
    DealSummary,
    PropertyCreate,
    PropertyResponse,
    PropertyUpdate,
)
from marketplace.services import favorites, properties

router = APIRouter(prefix="/properties", tags=["properties"])


@router.post("", response_model=PropertyResponse, status_code=201)
def create_property(
    payload: PropertyCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return properties.create_property(db, current_user, payload.model_dump(exclude_unset=True))


@router.patch("/{property_id}", response_model=PropertyResponse)
def update_property(
    property_id: int,
    payload: PropertyUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return properties.update_property(db, property_id, current_user, payload.model_dump(exclude_unset=True))


@router.post("/{property_id}/deal", response_model=DealSummary)
def close_deal(
    property_id: int,
    payload: CloseDealRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return properties.close_deal(db, property_id, current_user, payload.model_dump())


@router.delete("/{property_id}/deal", response_model=PropertyResponse)
def cancel_deal(
    property_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return properties.cancel_deal(db, property_id, current_user)


@router.post("/{property_id}/favorite", status_code=201)
def add_favorite(property_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    favorites.add_favorite(db, current_user, property_id)
    return {"status": "favorited", "property_id": property_id}


@router.delete("/{property_id}/favorite")
def remove_favorite(property_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    favorites.remove_favorite(db, current_user, property_id)
    return {"status": "removed", "property_id": property_id}
