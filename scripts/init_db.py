import sys
import os
from sqlmodel import SQLModel, Session, select

# Add current directory to path so we can import edfolio
sys.path.append(os.getcwd())

from edfolio.core.logging import setup_logging
from edfolio.db.session import engine
from edfolio.models import User


def init_database():
    print("--- Database Initialization ---")
    setup_logging()
    try:
        # Creates any missing tables; existing tables are left alone
        print("Attempting to create tables...")
        SQLModel.metadata.create_all(engine)
        print("Table creation/verification successful.")

        with Session(engine) as session:
            session.exec(select(User).limit(1)).first()
            print("Database connection test: SUCCESS")

    except Exception as e:
        print("Database connection test: FAILED")
        print(f"Error: {e}")
        if "sshtunnel" in str(e).lower():
            print("\nTIP: Make sure your SSH credentials in .env are correct and you are not blocked by a firewall.")
        elif "mysql" in str(e).lower():
            print("\nTIP: Ensure the database server is running and the user has correct permissions.")
        sys.exit(1)


if __name__ == "__main__":
    init_database()
