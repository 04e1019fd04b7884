from app.database.connection import get_connection


class UserNotificationsRepository:
    """Database operations for the user_notifications table."""

    def create(self, user_id: str, title: str, message: str) -> None:
        """Insert an in-app notification for a customer."""
        with get_connection() as conn:
            conn.execute(
                """
                INSERT INTO user_notifications (user_id, title, message)
                VALUES (%s, %s, %s)
                """,
                (user_id, title, message),
            )
            conn.commit()
