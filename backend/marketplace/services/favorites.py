from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketplace.core.errors import ConflictError, NotFoundError
from marketplace.models.favorite import Favorite
from marketplace.models.property import Property
from marketplace.models.user import User


def add_favorite(db: Session, user: User, property_id: int) -> Favorite:
    if db.get(Property, property_id) is None:
        raise NotFoundError("Property not found")

    exists = (
        db.query(Favorite.id)
        .filter(Favorite.user_id == user.id, Favorite.property_id == property_id)
        .first()
    )
    if exists:
        raise ConflictError("Property is already in your favorites")

    favorite = Favorite(user_id=user.id, property_id=property_id)
    db.add(favorite)
    try:
        db.commit()
    except IntegrityError:
        # Double click from the same user racing the existence check.
        db.rollback()
        raise ConflictError("Property is already in your favorites")
    db.refresh(favorite)
    return favorite


def remove_favorite(db: Session, user: User, property_id: int) -> None:
    deleted = (
        db.query(Favorite)
        .filter(Favorite.user_id == user.id, Favorite.property_id == property_id)
        .delete(synchronize_session=False)
    )
    if not deleted:
        db.rollback()
        raise NotFoundError("Favorite not found")
    db.commit()


def list_favorite_properties(db: Session, user: User) -> list[Property]:
    """Favorited properties, most recently favorited first."""
    return (
        db.query(Property)
        .join(Favorite, Favorite.property_id == Property.id)
        .filter(Favorite.user_id == user.id)
        .order_by(Favorite.created_at.desc(), Favorite.id.desc())
        .all()
    )
