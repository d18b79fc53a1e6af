from __future__ import annotations

import logging
import sqlite3

from werkzeug.security import check_password_hash, generate_password_hash

from time_tracking_app.data import Database
from time_tracking_app.errors import AdminNotFound, DuplicateAdminError, InvalidCredentials
from time_tracking_app.models import AdminUser

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_USERNAME = "admin"
VALID_ROLES = ("admin", "staff")

_COLUMNS = "id, username, name, email, role, password_hash"


def _row_to_admin(row: sqlite3.Row) -> AdminUser:
    return AdminUser(
        id=row["id"],
        username=row["username"],
        name=row["name"],
        email=row["email"],
        role=row["role"],
        password_hash=row["password_hash"],
    )


class AdminService:
    def __init__(self, database: Database) -> None:
        self._database = database

    def create_admin(
        self,
        *,
        username: str,
        password: str,
        name: str,
        email: str,
        role: str = "admin",
    ) -> AdminUser:
        username = username.strip()
        email = email.strip().lower()
        if not username or not password:
            raise ValueError("Username and password are required.")
        if role not in VALID_ROLES:
            raise ValueError(f"Role must be one of: {', '.join(VALID_ROLES)}")

        user = AdminUser(
            username=username,
            name=name.strip(),
            email=email,
            role=role,
            password_hash=generate_password_hash(password),
        )

        with self._database.connect() as connection:
            self._check_unique(connection, username=username, email=email)
            connection.execute(
                f"INSERT INTO admin_users ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?)",
                (user.id, user.username, user.name, user.email, user.role, user.password_hash),
            )

        logger.info("Created %s account %s", role, username)
        return user

    def list_admins(self) -> list[dict]:
        with self._database.connect() as connection:
            rows = connection.execute(
                f"SELECT {_COLUMNS} FROM admin_users ORDER BY LOWER(name) ASC"
            ).fetchall()
        return [_row_to_admin(row).public_dict() for row in rows]

    def get_admin(self, user_id: str) -> AdminUser:
        with self._database.connect() as connection:
            row = connection.execute(
                f"SELECT {_COLUMNS} FROM admin_users WHERE id = ?",
                (user_id,),
            ).fetchone()
        if not row:
            raise AdminNotFound(f"Admin account not found: {user_id}")
        return _row_to_admin(row)

    def find_by_username(self, username: str) -> AdminUser | None:
        with self._database.connect() as connection:
            row = connection.execute(
                f"SELECT {_COLUMNS} FROM admin_users WHERE username = ?",
                (username.strip(),),
            ).fetchone()
        return _row_to_admin(row) if row else None

    def update_admin(
        self,
        user_id: str,
        *,
        name: str | None = None,
        email: str | None = None,
        role: str | None = None,
        password: str | None = None,
    ) -> AdminUser:
        current = self.get_admin(user_id)
        new_email = email.strip().lower() if email is not None else current.email
        new_role = role if role is not None else current.role
        if new_role not in VALID_ROLES:
            raise ValueError(f"Role must be one of: {', '.join(VALID_ROLES)}")

        updated = AdminUser(
            id=current.id,
            username=current.username,
            name=name.strip() if name is not None else current.name,
            email=new_email,
            role=new_role,
            password_hash=generate_password_hash(password) if password else current.password_hash,
        )

        with self._database.connect() as connection:
            if new_email != current.email:
                self._check_unique(connection, email=new_email)
            connection.execute(
                """
                UPDATE admin_users
                   SET name = ?,
                       email = ?,
                       role = ?,
                       password_hash = ?,
                       updated_at = datetime('now')
                 WHERE id = ?
                """,
                (updated.name, updated.email, updated.role, updated.password_hash, user_id),
            )
        return updated

    def delete_admin(self, user_id: str) -> None:
        with self._database.connect() as connection:
            cursor = connection.execute("DELETE FROM admin_users WHERE id = ?", (user_id,))
            if cursor.rowcount == 0:
                raise AdminNotFound(f"Admin account not found: {user_id}")

    def authenticate(self, username: str, password: str) -> AdminUser:
        if not username or not password:
            raise InvalidCredentials("Username and password are required")

        user = self.find_by_username(username)
        if user is None or not check_password_hash(user.password_hash, password):
            logger.warning("Failed sign-in attempt for %r", username)
            raise InvalidCredentials("Invalid credentials")
        return user

    def ensure_default_admin(self, password: str) -> AdminUser:
        """Create the ``admin`` account, or reset its password if it already exists."""
        existing = self.find_by_username(DEFAULT_ADMIN_USERNAME)
        if existing is None:
            return self.create_admin(
                username=DEFAULT_ADMIN_USERNAME,
                password=password,
                name="System Administrator",
                email="admin@example.com",
                role="admin",
            )

        logger.info("Admin user already exists; resetting password")
        return self.update_admin(existing.id, password=password)

    @staticmethod
    def _check_unique(
        connection: sqlite3.Connection,
        *,
        username: str | None = None,
        email: str | None = None,
    ) -> None:
        if username is not None and connection.execute(
            "SELECT 1 FROM admin_users WHERE username = ?", (username,)
        ).fetchone():
            raise DuplicateAdminError("Username already exists")
        if email is not None and connection.execute(
            "SELECT 1 FROM admin_users WHERE email = ?", (email,)
        ).fetchone():
            raise DuplicateAdminError("Email already exists")
