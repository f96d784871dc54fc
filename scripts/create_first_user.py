import sys
import os
from sqlmodel import Session, select

# Add current directory to path
sys.path.append(os.getcwd())

from edfolio.db.session import engine
from edfolio.models.folio import DEFAULT_FOLIO_NAME, Folio
from edfolio.models.user import User
from edfolio.core.security import get_password_hash


def create_initial_user(email: str, password: str, full_name: str = "Edfolio Owner"):
    print("--- Initial User Creation ---")
    email = email.strip().lower()

    with Session(engine) as session:
        user = session.exec(select(User).where(User.email == email)).first()
        if user:
            print(f"User with email {email} already exists.")
            return

        print(f"Creating user {email}...")
        db_user = User(
            email=email,
            password=get_password_hash(password),
            full_name=full_name,
        )
        session.add(db_user)
        session.add(Folio(name=DEFAULT_FOLIO_NAME, owner_id=db_user.id))
        session.commit()
        print("Initial user created successfully!")
        print(f"Email: {email}")
        print(f"Folio: {DEFAULT_FOLIO_NAME}")


if __name__ == "__main__":
    if len(sys.argv) < 3:
        print("Usage: python scripts/create_first_user.py EMAIL PASSWORD [FULL_NAME]")
        sys.exit(1)
    create_initial_user(*sys.argv[1:4])
