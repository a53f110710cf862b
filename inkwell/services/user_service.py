"""User directory: federated account lifecycle and refresh-token fingerprint."""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

import asyncpg
import structlog

from inkwell.config import get_settings
from inkwell.database import get_pool
from inkwell.models.user import FederatedIdentity, Role, User
from inkwell.services.errors import InvalidCredentialError

logger = structlog.get_logger(__name__)

USER_COLUMNS = "id, email, google_id, name, avatar_url, role, is_active, created_at, updated_at"


def _row_to_user(row) -> User:
    return User(
        id=row["id"],
        email=row["email"],
        google_id=row["google_id"],
        name=row["name"],
        avatar_url=row["avatar_url"],
        role=Role(row["role"]),
        is_active=row["is_active"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class UserService:
    """Service for user records and their authentication fields."""

    def __init__(self):
        self.settings = get_settings()

    def _initial_role(self, email: str) -> Role:
        admin_email = self.settings.admin_email.strip().lower()
        if admin_email and email.lower() == admin_email:
            return Role.ADMIN
        return Role.USER

    async def find_or_create_from_identity(self, identity: FederatedIdentity) -> User:
        """Return the user for a verified identity, creating it on first login.

        Lookup is by email first, then by provider subject id (covers an
        email change at the provider). Existing users get their display
        fields and subject id refreshed; role and active flag are never
        touched here.

        Args:
            identity: Verified claims from the identity provider

        Returns:
            The existing or newly created User

        Raises:
            InvalidCredentialError: If the provider subject is already linked
                to another account
        """
        email = identity.email.strip().lower()
        now = datetime.now(timezone.utc)

        pool = await get_pool()

        try:
            async with pool.acquire() as conn:
                async with conn.transaction():
                    existing_id = await conn.fetchval(
                        "SELECT id FROM users WHERE email = $1",
                        email,
                    )
                    if existing_id is None:
                        existing_id = await conn.fetchval(
                            "SELECT id FROM users WHERE google_id = $1",
                            identity.external_subject_id,
                        )

                    if existing_id is not None:
                        row = await conn.fetchrow(
                            f"""
                            UPDATE users
                            SET email = $1, name = $2, avatar_url = $3, google_id = $4, updated_at = $5
                            WHERE id = $6
                            RETURNING {USER_COLUMNS}
                            """,
                            email,
                            identity.name,
                            identity.avatar_url,
                            identity.external_subject_id,
                            now,
                            existing_id,
                        )
                        logger.info("user_identity_synced", user_id=str(existing_id))
                        return _row_to_user(row)

                    role = self._initial_role(email)
                    # ON CONFLICT covers two first logins for the same email racing;
                    # xmax = 0 only for a freshly inserted row
                    row = await conn.fetchrow(
                        f"""
                        INSERT INTO users (id, email, google_id, name, avatar_url, role, is_active, created_at, updated_at)
                        VALUES ($1, $2, $3, $4, $5, $6, TRUE, $7, $8)
                        ON CONFLICT (email) DO UPDATE
                        SET name = EXCLUDED.name,
                            avatar_url = EXCLUDED.avatar_url,
                            google_id = EXCLUDED.google_id,
                            updated_at = EXCLUDED.updated_at
                        RETURNING {USER_COLUMNS}, (xmax = 0) AS inserted
                        """,
                        uuid4(),
                        email,
                        identity.external_subject_id,
                        identity.name,
                        identity.avatar_url,
                        role.value,
                        now,
                        now,
                    )
        except asyncpg.UniqueViolationError as e:
            # The provider subject is already linked to a different account
            logger.warning(
                "identity_subject_conflict",
                email=email,
                constraint=getattr(e, "constraint_name", None),
            )
            raise InvalidCredentialError("Identity is linked to a different account")

        user = _row_to_user(row)
        if row["inserted"]:
            logger.info("user_created", user_id=str(user.id), role=user.role.value)
        else:
            logger.info("user_identity_synced", user_id=str(user.id))
        return user

    async def set_refresh_fingerprint(
        self, user_id: UUID, fingerprint: Optional[str]
    ) -> None:
        """Overwrite the stored refresh-token fingerprint.

        Passing None logs the user out everywhere. Clearing an already-empty
        fingerprint is a no-op.

        Args:
            user_id: User UUID
            fingerprint: New fingerprint, or None to clear
        """
        pool = await get_pool()

        async with pool.acquire() as conn:
            await conn.execute(
                """
                UPDATE users
                SET refresh_token_hash = $1
                WHERE id = $2
                """,
                fingerprint,
                user_id,
            )

    async def rotate_refresh_fingerprint(
        self, user_id: UUID, expected: str, new: str
    ) -> bool:
        """Atomically swap the fingerprint if it still equals ``expected``.

        Args:
            user_id: User UUID
            expected: Fingerprint of the refresh token being redeemed
            new: Fingerprint of the newly issued refresh token

        Returns:
            True if exactly this caller performed the swap, False if the
            fingerprint had already changed or the user is inactive
        """
        pool = await get_pool()

        async with pool.acquire() as conn:
            swapped_id = await conn.fetchval(
                """
                UPDATE users
                SET refresh_token_hash = $1
                WHERE id = $2 AND is_active = TRUE AND refresh_token_hash = $3
                RETURNING id
                """,
                new,
                user_id,
                expected,
            )

        return swapped_id is not None

    async def load_active_by_id(self, user_id: UUID) -> Optional[User]:
        """Get an active user by UUID in a single filtered query.

        Args:
            user_id: User UUID

        Returns:
            User model or None if missing or deactivated
        """
        pool = await get_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                SELECT {USER_COLUMNS}
                FROM users
                WHERE id = $1 AND is_active = TRUE
                """,
                user_id,
            )

        if row is None:
            return None
        return _row_to_user(row)

    async def get_refresh_state(self, user_id: UUID) -> Optional[tuple[User, Optional[str]]]:
        """Get an active user together with its stored refresh fingerprint.

        Args:
            user_id: User UUID

        Returns:
            Tuple of (User, fingerprint) or None if missing or deactivated
        """
        pool = await get_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                SELECT {USER_COLUMNS}, refresh_token_hash
                FROM users
                WHERE id = $1 AND is_active = TRUE
                """,
                user_id,
            )

        if row is None:
            return None
        return _row_to_user(row), row["refresh_token_hash"]

    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        """Get a user by UUID regardless of active flag."""
        pool = await get_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {USER_COLUMNS} FROM users WHERE id = $1",
                user_id,
            )

        if row is None:
            return None
        return _row_to_user(row)

    async def list_users(
        self,
        page: int = 1,
        limit: int = 10,
        role: Optional[Role] = None,
        is_active: Optional[bool] = None,
        search: Optional[str] = None,
    ) -> tuple[list[User], int]:
        """Return a page of users ordered by newest first.

        Args:
            page: 1-based page number
            limit: Page size
            role: Only users with this role
            is_active: Only users with this active flag
            search: Case-insensitive substring of name or email

        Returns:
            Tuple of (users on this page, total matching users)
        """
        where_clauses = []
        params = []

        if role is not None:
            params.append(role.value)
            where_clauses.append(f"role = ${len(params)}")

        if is_active is not None:
            params.append(is_active)
            where_clauses.append(f"is_active = ${len(params)}")

        if search:
            params.append(f"%{search}%")
            where_clauses.append(
                f"(name ILIKE ${len(params)} OR email ILIKE ${len(params)})"
            )

        where_sql = f"WHERE {' AND '.join(where_clauses)}" if where_clauses else ""
        filter_params = list(params)

        params.extend([limit, (page - 1) * limit])
        query = f"""
            SELECT {USER_COLUMNS}
            FROM users
            {where_sql}
            ORDER BY created_at DESC
            LIMIT ${len(params) - 1} OFFSET ${len(params)}
        """

        pool = await get_pool()

        async with pool.acquire() as conn:
            rows = await conn.fetch(query, *params)
            total = await conn.fetchval(
                f"SELECT COUNT(*) FROM users {where_sql}",
                *filter_params,
            )

        return [_row_to_user(row) for row in rows], total

    async def update_user(
        self,
        user_id: UUID,
        role: Optional[Role] = None,
        is_active: Optional[bool] = None,
    ) -> Optional[User]:
        """Update role and/or active flag.

        Deactivating a user also clears its refresh fingerprint in the same
        statement, ending every session the user had.

        Args:
            user_id: UUID of the user to update
            role: New role (if provided)
            is_active: New active flag (if provided)

        Returns:
            Updated User model, or None if user not found
        """
        set_clauses = []
        params = []

        if role is not None:
            params.append(role.value)
            set_clauses.append(f"role = ${len(params)}")

        if is_active is not None:
            params.append(is_active)
            set_clauses.append(f"is_active = ${len(params)}")
            if not is_active:
                set_clauses.append("refresh_token_hash = NULL")

        if not set_clauses:
            return await self.get_by_id(user_id)

        params.append(datetime.now(timezone.utc))
        set_clauses.append(f"updated_at = ${len(params)}")

        params.append(user_id)
        query = f"""
            UPDATE users
            SET {', '.join(set_clauses)}
            WHERE id = ${len(params)}
            RETURNING {USER_COLUMNS}
        """

        pool = await get_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(query, *params)

        if row is None:
            return None

        logger.info(
            "user_updated",
            user_id=str(user_id),
            fields_updated=[c.split(" = ")[0] for c in set_clauses if "updated_at" not in c],
        )
        return _row_to_user(row)

    async def delete_user(self, user_id: UUID) -> bool:
        """Hard-delete a user.

        Returns:
            True if the user was deleted, False if not found
        """
        pool = await get_pool()

        async with pool.acquire() as conn:
            result = await conn.execute(
                "DELETE FROM users WHERE id = $1",
                user_id,
            )

        deleted = result == "DELETE 1"

        if deleted:
            logger.info("user_deleted", user_id=str(user_id))
        else:
            logger.warning("user_delete_not_found", user_id=str(user_id))

        return deleted
