"""
Create a local user with a default role (e.g. first admin). Run from project root:
  python -m tenantauth.scripts.create_user EMAIL NAME PASSWORD [ROLE]
Example:
  python -m tenantauth.scripts.create_user admin@example.com "Site Admin" your-secure-password ADMIN
"""
import argparse
import sys

from tenantauth.core.database import SessionLocal
from tenantauth.core.logging import configure_logging
from tenantauth.core.security import hash_password
from tenantauth.models import Role, RoleName, User, UserRole
from tenantauth.schemas.auth import PASSWORD_MAX_LEN


def main() -> int:
    parser = argparse.ArgumentParser(description="Create a tenantauth user (no registration UI).")
    parser.add_argument("email", help="Login email (stored exactly as given)")
    parser.add_argument("name", help="Display name")
    parser.add_argument("password", help=f"Password (8-{PASSWORD_MAX_LEN} chars)")
    parser.add_argument(
        "role",
        nargs="?",
        default=RoleName.USER.value,
        choices=[r.value for r in RoleName],
    )
    args = parser.parse_args()
    configure_logging()

    email = args.email.strip()
    if "@" not in email or len(email) > 255:
        print("Invalid email.", file=sys.stderr)
        return 1
    if len(args.password) < 8 or len(args.password) > PASSWORD_MAX_LEN:
        print(f"Password must be 8-{PASSWORD_MAX_LEN} characters.", file=sys.stderr)
        return 1

    db = SessionLocal()
    try:
        if db.query(User).filter(User.email == email).first():
            print(f"User '{email}' already exists.", file=sys.stderr)
            return 1
        role = db.query(Role).filter(Role.name == RoleName(args.role)).first()
        if role is None:
            print(f"Role '{args.role}' does not exist; run the seed script first.", file=sys.stderr)
            return 1
        user = User(
            name=args.name.strip() or email,
            email=email,
            password_hash=hash_password(args.password),
            is_active=True,
        )
        db.add(user)
        db.flush()
        db.add(UserRole(user_id=user.id, role_id=role.id, is_default=True))
        db.commit()
        print(f"Created user '{email}' with default role '{args.role}'.")
        return 0
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
