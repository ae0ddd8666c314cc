"""
Create the first VaaniAI admin user.

Run after the database exists:
    python -m vaaniai.create_admin_user
"""

import getpass

from . import account_store
from . import database
from .auth import validate_password_strength
from .database import init_db
from .exceptions import EmailTakenError, ValidationError

ROLE_CHOICES = {"1": "admin", "2": "super_admin"}


def promote(user, role: str) -> None:
    user.role = role
    user.is_admin = True


def create_admin_user() -> None:
    """Create or promote an admin user interactively."""
    print("VaaniAI Admin User Setup")
    print("=" * 40)

    init_db()
    db = database.SessionLocal()

    try:
        email = input("Email address: ").strip().lower()
        if not email or "@" not in email:
            print("Error: Invalid email address")
            return

        print("\nSelect admin role:")
        print("1. admin - Back-office access")
        print("2. super_admin - Back-office access including user deletion")
        role = None
        while role is None:
            role = ROLE_CHOICES.get(input("Enter choice (1-2): ").strip())
            if role is None:
                print("Invalid choice. Please enter 1 or 2.")

        existing_user = account_store.get_user_by_email(db, email)
        if existing_user:
            response = input(f"User {email} already exists. Promote to {role}? (y/N): ")
            if response.lower() == "y":
                promote(existing_user, role)
                db.commit()
                print(f"User {email} promoted to {role} successfully!")
            else:
                print("Exiting...")
            return

        name = input("Name: ").strip()

        while True:
            password = getpass.getpass("Password (min 8 chars): ")
            is_valid, error_msg = validate_password_strength(password)
            if is_valid:
                break
            print(f"Password error: {error_msg}")

        if password != getpass.getpass("Confirm password: "):
            print("Error: Passwords do not match")
            return

        try:
            user = account_store.register(db, name, email, password)
        except (EmailTakenError, ValidationError) as e:
            print(f"Error: {e.detail}")
            return

        promote(user, role)
        db.commit()
        print(f"\nAdmin user {email} created with role {role}.")
    finally:
        db.close()


def main() -> None:
    try:
        create_admin_user()
    except KeyboardInterrupt:
        print("\nCancelled.")


if __name__ == "__main__":
    main()
