from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.core.database import get_db
from marketplace.core.deps import require_roles
from marketplace.models.user import User, UserRole
from marketplace.schemas.property import AdminStatusUpdate, PropertyResponse
from marketplace.services.properties import approve_property, reject_property, set_status_as_admin

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/properties/{property_id}/approve", response_model=PropertyResponse)
def approve(property_id: int, db: Session = Depends(get_db), current: User = Depends(require_roles(UserRole.admin))):
    return approve_property(db, property_id, current)


@router.post("/properties/{property_id}/reject", response_model=PropertyResponse)
def reject(property_id: int, db: Session = Depends(get_db), current: User = Depends(require_roles(UserRole.admin))):
    return reject_property(db, property_id, current)


@router.patch("/properties/{property_id}/status", response_model=PropertyResponse)
def change_status(
    property_id: int,
    payload: AdminStatusUpdate,
    db: Session = Depends(get_db),
    current: User = Depends(require_roles(UserRole.admin)),
):
    return set_status_as_admin(db, property_id, current, payload.status)
