import os

from marketplace.core.database import Base, SessionLocal, engine
from marketplace.core.security import create_access_token
from marketplace.models.user import BrokerStatus, User, UserRole


def create_user(email: str, full_name: str, role: UserRole) -> User:
    db = SessionLocal()
    try:
        existing = db.query(User).filter(User.email == email).first()
        if existing:
            print(f"User already exists: {email}")
            return existing

        user = User(
            email=email,
            full_name=full_name,
            role=role,
            broker_status=BrokerStatus.approved if role == UserRole.broker else None,
            is_active=True,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        print(f"Created {role.value}: {email}")
        return user
    finally:
        db.close()


if __name__ == "__main__":
    # Do not hardcode accounts in the repo. Use env vars for local bootstrap.
    Base.metadata.create_all(bind=engine)
    admin_email = os.getenv("BOOTSTRAP_ADMIN_EMAIL")
    if admin_email:
        admin = create_user(admin_email, "Marketplace Admin", UserRole.admin)
        # Local development only; production sessions come from the identity provider.
        print(f"Access token: {create_access_token(str(admin.id), admin.role.value)}")
    else:
        print("Bootstrap skipped. Set BOOTSTRAP_ADMIN_EMAIL to create an admin user.")
