import sys
from pathlib import Path
import os

from werkzeug.security import generate_password_hash
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from contextlib import contextmanager

# Ensure repo root is on sys.path when running as a script.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.tourbook.models import Permission, Role, User
from app.tourbook.rbac import PERMISSIONS


@contextmanager
def _session_scope(database_url: str):
    engine = create_engine(database_url, future=True)
    sm = sessionmaker(bind=engine, class_=Session, autoflush=False, autocommit=False, expire_on_commit=False, future=True)
    s: Session = sm()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
        engine.dispose()


def seed_only(*, database_url: str | None = None) -> None:
    """
    Seed permissions/roles/admin user in an idempotent way.
    Does NOT overwrite an existing admin user's password.
    """
    admin_email = (os.environ.get("ADMIN_EMAIL") or "admin@tourbook.local").strip().lower()
    admin_password = os.environ.get("ADMIN_PASSWORD") or "change-me"

    db_url = (database_url or os.environ.get("DATABASE_URL") or "sqlite:///tourbook.db").strip()

    # Direct engine/session so this can run in release without importing app.wsgi.
    with _session_scope(db_url) as s:
        role_admin = s.query(Role).filter(Role.key == "admin").one_or_none()
        if not role_admin:
            role_admin = Role(key="admin", name="Administrator")
            s.add(role_admin)

        for key, name in PERMISSIONS:
            p = s.query(Permission).filter(Permission.key == key).one_or_none()
            if not p:
                p = Permission(key=key, name=name)
                s.add(p)
            if p not in role_admin.permissions:
                role_admin.permissions.append(p)

        user = s.query(User).filter(User.email == admin_email).one_or_none()
        if not user:
            user = User(
                email=admin_email,
                name="Administrator",
                password_hash=generate_password_hash(admin_password),
                is_active=True,
            )
            s.add(user)
        if role_admin not in user.roles:
            user.roles.append(role_admin)

    print("Initialized database (seed_only).")
    print(f"Admin email: {admin_email}")
    print("Admin password: (from ADMIN_PASSWORD)")


def main() -> None:
    seed_only(database_url=None)


if __name__ == "__main__":
    main()
