from app.database.connection import get_connection


class UserRolesRepository:
    """Database operations for the user_roles table."""

    def get_role(self, user_id: str) -> str | None:
        """Return the user's role, or None if the user has no role row."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT role FROM user_roles WHERE user_id = %s",
                    (user_id,),
                )
                row = cur.fetchone()

        if row is None or row[0] is None:
            return None
        return str(row[0])
