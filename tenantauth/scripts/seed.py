"""
Seed roles, permissions, role-permission mappings and users. Run from project root:
  python -m tenantauth.scripts.seed [--data-dir DIR]

Optional JSON files in DIR (default: ./seed-data):
  roles.json            {"roles": ["ADMIN", "USER", ...]}
  permissions.json      [{"code": "...", "description": "..."}, ...]
  rolePermissions.json  [{"permission": "manageusers", "roles": ["ADMIN"]}, ...]
  users.json            [{"roleName": "ADMIN", "user": {"name": ..., "email": ...,
                          "isActive": true, "password": ...}}, ...]

Missing roles/permissions files fall back to built-in defaults; missing
mapping/user files skip that step. Existing rows are left untouched, so the
script can be re-run.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError
from sqlalchemy.orm import Session

from tenantauth.core.logging import configure_logging
from tenantauth.core.permissions import DEFAULT_PERMISSIONS
from tenantauth.core.security import hash_password
from tenantauth.models import Permission, Role, RoleName, RolePermission, User, UserRole

logger = logging.getLogger(__name__)

DEFAULT_ROLES = [RoleName.ADMIN.value, RoleName.USER.value]


class SeedUserFields(BaseModel):
    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    password: str = Field(min_length=1)
    is_active: bool = Field(default=True, alias="isActive")


class SeedUser(BaseModel):
    role_name: RoleName = Field(alias="roleName")
    user: SeedUserFields


class SeedRolePermission(BaseModel):
    permission: str
    roles: list[str]


def _load_json(data_dir: Path, filename: str) -> Any | None:
    path = data_dir / filename
    if not path.is_file():
        return None
    return json.loads(path.read_text(encoding="utf-8"))


def seed_roles(db: Session, names: list[str]) -> int:
    existing = {getattr(r.name, "value", r.name) for r in db.query(Role).all()}
    created = 0
    for name in names:
        if name in existing:
            continue
        try:
            role_name = RoleName(name)
        except ValueError:
            logger.warning("Unknown role name: %s, skipping", name)
            continue
        db.add(Role(name=role_name, is_active=True))
        existing.add(name)
        created += 1
    db.commit()
    return created


def seed_permissions(db: Session, permissions: list[dict[str, str]]) -> int:
    existing = {code for (code,) in db.query(Permission.code).all()}
    created = 0
    for perm in permissions:
        code = perm.get("code")
        if not code or code in existing:
            continue
        db.add(Permission(code=code, description=perm.get("description")))
        existing.add(code)
        created += 1
    db.commit()
    return created


def seed_role_permissions(db: Session, mappings: list[SeedRolePermission]) -> int:
    roles = {getattr(r.name, "value", r.name): r.id for r in db.query(Role).all()}
    permissions = {p.code: p.id for p in db.query(Permission).all()}
    existing = {(rp.role_id, rp.permission_id) for rp in db.query(RolePermission).all()}
    created = 0
    for mapping in mappings:
        permission_id = permissions.get(mapping.permission)
        if permission_id is None:
            logger.warning("Permission not found: %s, skipping", mapping.permission)
            continue
        for role_name in mapping.roles:
            role_id = roles.get(role_name)
            if role_id is None:
                logger.warning("Role not found: %s, skipping", role_name)
                continue
            if (role_id, permission_id) in existing:
                continue
            db.add(RolePermission(role_id=role_id, permission_id=permission_id))
            existing.add((role_id, permission_id))
            created += 1
    db.commit()
    return created


def seed_users(db: Session, users: list[SeedUser], rounds: int | None = None) -> int:
    """Insert users with their default role in one transaction."""
    roles = {getattr(r.name, "value", r.name): r.id for r in db.query(Role).all()}
    created = 0
    try:
        for entry in users:
            role_id = roles.get(entry.role_name.value)
            if role_id is None:
                logger.warning(
                    "Role not found: %s, skipping user %s", entry.role_name.value, entry.user.email
                )
                continue
            if db.query(User).filter(User.email == entry.user.email).first() is not None:
                continue
            user = User(
                name=entry.user.name,
                email=entry.user.email,
                is_active=entry.user.is_active,
                password_hash=hash_password(entry.user.password, rounds=rounds),
            )
            db.add(user)
            db.flush()
            db.add(UserRole(user_id=user.id, role_id=role_id, is_default=True))
            created += 1
        db.commit()
    except Exception:
        db.rollback()
        raise
    return created


def run_seed(db: Session, data_dir: Path, rounds: int | None = None) -> dict[str, int]:
    """Run every seed step; returns the number of rows created per step."""
    roles_data = _load_json(data_dir, "roles.json")
    if roles_data is None:
        logger.warning("roles.json not found, using default roles %s", DEFAULT_ROLES)
        role_names = DEFAULT_ROLES
    else:
        role_names = list(roles_data.get("roles", []))

    permissions_data = _load_json(data_dir, "permissions.json")
    if permissions_data is None:
        logger.warning("permissions.json not found, using default permissions")
        permissions_data = DEFAULT_PERMISSIONS

    counts = {
        "roles": seed_roles(db, role_names),
        "permissions": seed_permissions(db, permissions_data),
        "role_permissions": 0,
        "users": 0,
    }

    mappings_data = _load_json(data_dir, "rolePermissions.json")
    if mappings_data is None:
        logger.warning("rolePermissions.json not found, skipping role-permission seeding")
    else:
        mappings = [SeedRolePermission.model_validate(m) for m in mappings_data]
        counts["role_permissions"] = seed_role_permissions(db, mappings)

    users_data = _load_json(data_dir, "users.json")
    if users_data is None:
        logger.warning("users.json not found, skipping user seeding")
    else:
        users = [SeedUser.model_validate(u) for u in users_data]
        counts["users"] = seed_users(db, users, rounds=rounds)

    return counts


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed tenantauth reference data and users.")
    parser.add_argument("--data-dir", default="seed-data", help="Directory with seed JSON files")
    args = parser.parse_args()

    configure_logging()
    from tenantauth.core.database import SessionLocal

    db = SessionLocal()
    try:
        counts = run_seed(db, Path(args.data_dir))
        logger.info("Seed completed: %s", counts)
        return 0
    except (ValidationError, json.JSONDecodeError) as e:
        logger.error("Invalid seed data: %s", e)
        return 1
    except Exception as e:
        logger.exception("Seed failed: %s", e)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
