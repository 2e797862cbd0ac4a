"""
PostgreSQL repository adapter - Implements AccountService protocol.

This module provides the PostgreSQL implementation of the domain's
account port using psycopg3 with raw SQL. It is only reached after a
verification code has been confirmed.

Security Design - Timing Oracle Prevention:
------------------------------------------
authenticate() always runs bcrypt.checkpw(), comparing against a dummy
hash when the email has no account, so response time does not reveal
whether an account exists.
"""

import logging
from pathlib import Path

from psycopg_pool import ConnectionPool

from src.adapters.security.passwords import check_password
from src.domain.exceptions import AccountAlreadyExists, AccountNotFound
from src.domain.payloads import (
    CreatorRegistration,
    PasswordChange,
    PasswordReset,
    PendingPayload,
    ViewerRegistration,
)

logger = logging.getLogger(__name__)


class PostgresAccountRepository:
    """
    Implements AccountService protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    def exists(self, email: str) -> bool:
        """Return True if a user row exists for this normalized email."""
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute("SELECT 1 FROM users WHERE email = %s", (email,))
            return cursor.fetchone() is not None

    def authenticate(self, email: str, password: str) -> bool:
        """
        Check a password against the stored hash.

        Runs bcrypt even when the user does not exist.
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute("SELECT password_hash FROM users WHERE email = %s", (email,))
            row = cursor.fetchone()

        return check_password(password, row[0] if row is not None else None)

    def finalize(self, email: str, payload: PendingPayload) -> str:
        """
        Persist a confirmed payload.

        Args:
            email: Normalized email address
            payload: Registration or password payload

        Returns:
            User id (as string) of the created or updated account

        Raises:
            AccountAlreadyExists: Registration for an email that is taken
            AccountNotFound: Password update for an unknown email
        """
        if isinstance(payload, ViewerRegistration):
            return self._create_viewer(email, payload)
        if isinstance(payload, CreatorRegistration):
            return self._create_creator(email, payload)
        if isinstance(payload, (PasswordChange, PasswordReset)):
            return self._update_password(email, payload.new_password_hash)
        raise TypeError(f"Unsupported payload: {type(payload).__name__}")

    def _create_viewer(self, email: str, payload: ViewerRegistration) -> str:
        profile_sql = """
            INSERT INTO viewer_profiles (user_id, full_name, country)
            VALUES (%s, %s, %s)
        """

        with self._pool.connection() as conn, conn.cursor() as cursor:
            user_id = self._insert_user(cursor, email, payload.password_hash, "VIEWER")
            cursor.execute(profile_sql, (user_id, payload.full_name, payload.country))
            conn.commit()

        logger.info("Viewer account created: %s", email)
        return str(user_id)

    def _create_creator(self, email: str, payload: CreatorRegistration) -> str:
        profile_sql = """
            INSERT INTO creator_profiles (user_id, full_name, channel_name, bio, website_url, country)
            VALUES (%s, %s, %s, %s, %s, %s)
        """

        with self._pool.connection() as conn, conn.cursor() as cursor:
            user_id = self._insert_user(cursor, email, payload.password_hash, "CREATOR")
            cursor.execute(
                profile_sql,
                (
                    user_id,
                    payload.full_name,
                    payload.channel_name,
                    payload.bio,
                    payload.website_url,
                    payload.country,
                ),
            )
            conn.commit()

        logger.info("Creator account created: %s", email)
        return str(user_id)

    def _insert_user(self, cursor, email: str, password_hash: str, role: str):
        """
        Insert the user row inside the caller's transaction.

        ON CONFLICT DO NOTHING keeps concurrent confirmations for the same
        email from creating two accounts; the loser sees no returned row.
        """
        sql = """
            INSERT INTO users (email, password_hash, role)
            VALUES (%s, %s, %s)
            ON CONFLICT (email) DO NOTHING
            RETURNING id
        """
        cursor.execute(sql, (email, password_hash, role))
        row = cursor.fetchone()
        if row is None:
            # Leaving the connection block with an exception rolls back
            raise AccountAlreadyExists(email)
        return row[0]

    def _update_password(self, email: str, new_password_hash: str) -> str:
        sql = """
            UPDATE users
            SET password_hash = %s, updated_at = NOW()
            WHERE email = %s
            RETURNING id
        """

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (new_password_hash, email))
            row = cursor.fetchone()
            if row is None:
                raise AccountNotFound(email)
            conn.commit()

        logger.info("Password updated: %s", email)
        return str(row[0])


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning("Migrations directory not found: %s", migrations_dir)
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info("Running %d migration(s)", len(sql_files))

    for sql_file in sql_files:
        logger.info("Executing migration: %s", sql_file.name)
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info("Migration complete: %s", sql_file.name)
        except Exception as e:
            logger.error("Migration failed: %s - %s", sql_file.name, e)
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
