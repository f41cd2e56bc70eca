"""
Create (or reset the password of) an admin user.
Run from backend dir: python -m scripts.create_admin <username> <password>
"""
import argparse
import sys

from gymdesk.core.db_transaction import db_transaction
from gymdesk.core.security import get_password_hash
from gymdesk.models.user import User, RoleEnum


def create_admin(username: str, password: str) -> User:
    with db_transaction(operation=f"Creating admin {username}") as db:
        user = db.query(User).filter(User.username == username).first()
        if user:
            user.hashed_password = get_password_hash(password)
            user.role = RoleEnum.ADMIN
            user.is_active = True
            print(f"Updated existing user '{username}' as admin")
        else:
            user = User(
                username=username,
                hashed_password=get_password_hash(password),
                role=RoleEnum.ADMIN,
                is_active=True,
            )
            db.add(user)
            print(f"Created admin user '{username}'")
    return user


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create a GymDesk admin user")
    parser.add_argument("username")
    parser.add_argument("password")
    args = parser.parse_args()
    if len(args.password) < 6:
        print("Password must be at least 6 characters long", file=sys.stderr)
        sys.exit(1)
    create_admin(args.username, args.password)
