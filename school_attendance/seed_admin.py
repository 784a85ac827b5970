import argparse

from sqlmodel import Session, select

from .db import create_db_and_tables, engine
from .models import User, UserRole


def create_admin_user(dni: str, password: str, email: str) -> User:
    """
    Creates the first admin account if no user with `dni` exists yet.
    Registration is admin-only, so a fresh database needs one.
    """
    create_db_and_tables()
    with Session(engine) as session:
        admin_user = session.exec(select(User).where(User.dni == dni)).first()
        if admin_user:
            print("Admin user already exists.")
            return admin_user

        print("Creating admin user...")
        admin_user = User(
            first_name="Admin",
            last_name="User",
            dni=dni,
            email=email,
            role=UserRole.ADMIN,
        )
        admin_user.set_password(password)
        session.add(admin_user)
        session.commit()
        session.refresh(admin_user)
        print("Admin user created successfully.")
        return admin_user


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create the initial admin user.")
    parser.add_argument("--dni", default="00000000")
    parser.add_argument("--password", default="admin123")
    parser.add_argument("--email", default="admin@escuela.com")
    args = parser.parse_args()
    create_admin_user(args.dni, args.password, args.email)
