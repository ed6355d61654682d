"""Page view repository over a pooled SQL connection."""

import ssl
from datetime import UTC, datetime, timedelta
from typing import Any

import databases
import sqlalchemy as sa
from loguru import logger
from sqlalchemy.schema import CreateIndex, CreateTable

from ..retry import with_connect_retry
from ..types import PageStat, PageViewRecord

PATH_MAX_LENGTH = 255
IP_MAX_LENGTH = 45


def _utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


def _isoformat(value: Any) -> str | None:
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value) if value is not None else None


def _insecure_ssl_context() -> ssl.SSLContext:
    """TLS without certificate verification, as managed Postgres requires."""
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    return context


class PageViewRepository:
    """PostgreSQL/SQLite page view repository using databases."""

    configured = True

    def __init__(
        self,
        database_url: str,
        require_ssl: bool = False,
        connect_attempts: int = 10,
        retry_step: float = 0.1,
    ):
        """Initialize repository.

        Args:
            database_url: Database connection URL.
            require_ssl: Connect over TLS without verifying the certificate.
            connect_attempts: Connection attempts before giving up.
            retry_step: Wait increment between attempts, in seconds.
        """
        options: dict[str, Any] = {"ssl": _insecure_ssl_context()} if require_ssl else {}
        self.database = databases.Database(database_url, **options)
        self.connect_attempts = connect_attempts
        self.retry_step = retry_step
        self.metadata = sa.MetaData()

        self.page_views = sa.Table(
            "page_views",
            self.metadata,
            sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
            sa.Column("path", sa.String(PATH_MAX_LENGTH), nullable=False),
            sa.Column("user_agent", sa.Text),
            sa.Column("ip_address", sa.String(IP_MAX_LENGTH)),
            sa.Column("timestamp", sa.DateTime, nullable=False, index=True),
        )

    async def startup(self) -> None:
        """Connect the pool and create tables."""

        @with_connect_retry("PostgreSQL", max_attempts=self.connect_attempts, step=self.retry_step)
        async def connect() -> None:
            await self.database.connect()

        try:
            await connect()
        except Exception as e:  # noqa: BLE001
            logger.error(f"Failed to connect to database: {e}")
            return

        logger.info("Connected to PostgreSQL database")
        await self._create_tables()

    async def shutdown(self) -> None:
        """Close the connection pool."""
        if self.database.is_connected:
            await self.database.disconnect()
            logger.info("PostgreSQL pool closed")

    async def log_page_view(
        self, path: str, user_agent: str | None, ip_address: str | None
    ) -> PageViewRecord | None:
        """Record one page view.

        Args:
            path: Request path, truncated to the column width.
            user_agent: Client user agent.
            ip_address: Client address.

        Returns:
            The stored row, or None if the insert failed.
        """
        query = (
            self.page_views.insert()
            .values(
                path=path[:PATH_MAX_LENGTH],
                user_agent=user_agent,
                ip_address=ip_address[:IP_MAX_LENGTH] if ip_address else None,
                timestamp=_utcnow(),
            )
            .returning(*self.page_views.c)
        )
        try:
            row = await self.database.fetch_one(query)
        except Exception as e:  # noqa: BLE001
            logger.error(f"Error logging page view: {e}")
            return None

        if row is None:
            return None
        return {
            "id": row["id"],
            "path": row["path"],
            "user_agent": row["user_agent"],
            "ip_address": row["ip_address"],
            "timestamp": _isoformat(row["timestamp"]) or "",
        }

    async def get_page_view_stats(self, limit: int = 10) -> list[PageStat] | None:
        """Get the most viewed paths.

        Args:
            limit: Maximum number of paths to return.

        Returns:
            Paths ordered by view count descending, or None on failure.
        """
        views = sa.func.count().label("views")
        query = (
            sa.select(
                self.page_views.c.path,
                views,
                sa.func.max(self.page_views.c.timestamp).label("last_view"),
            )
            .group_by(self.page_views.c.path)
            .order_by(views.desc(), self.page_views.c.path)
            .limit(limit)
        )
        try:
            rows = await self.database.fetch_all(query)
        except Exception as e:  # noqa: BLE001
            logger.error(f"Error getting page view stats: {e}")
            return None

        return [
            {
                "path": row["path"],
                "views": int(row["views"]),
                "last_view": _isoformat(row["last_view"]),
            }
            for row in rows
        ]

    async def get_total_page_views(self) -> int:
        """Count all recorded page views (0 on failure)."""
        query = sa.select(sa.func.count()).select_from(self.page_views)
        try:
            total = await self.database.fetch_val(query)
        except Exception as e:  # noqa: BLE001
            logger.error(f"Error getting total page views: {e}")
            return 0
        return int(total or 0)

    async def delete_older_than(self, days: int) -> int:
        """Delete page views older than ``days`` days.

        Returns:
            Number of deleted rows (0 on failure).
        """
        cutoff = _utcnow() - timedelta(days=days)
        query = (
            self.page_views.delete()
            .where(self.page_views.c.timestamp < cutoff)
            .returning(self.page_views.c.id)
        )
        try:
            rows = await self.database.fetch_all(query)
        except Exception as e:  # noqa: BLE001
            logger.error(f"Error cleaning old page views: {e}")
            return 0
        return len(rows)

    async def health_check(self) -> bool:
        """Check if database is accessible.

        Returns:
            True if database is healthy, False otherwise.
        """
        try:
            await self.database.execute("SELECT 1")
            return True
        except Exception:  # noqa: BLE001
            logger.exception("Database health check failed")
            return False

    async def _create_tables(self) -> None:
        """Create the page_views table and its indexes if they don't exist."""
        statements = [
            CreateTable(self.page_views, if_not_exists=True),
            *(CreateIndex(index, if_not_exists=True) for index in self.page_views.indexes),
        ]
        try:
            for statement in statements:
                await self.database.execute(statement)
        except Exception as e:  # noqa: BLE001
            logger.error(f"Error initializing database schema: {e}")
            return
        logger.info("Database schema initialized")


class NoOpRepository:
    """Repository used when DATABASE_URL is not set."""

    configured = False

    def __init__(self) -> None:
        """Warn once that persistence is off."""
        logger.warning("DATABASE_URL not set - PostgreSQL features disabled")

    async def startup(self) -> None:
        """No initialization needed."""
        pass

    async def shutdown(self) -> None:
        """No cleanup needed."""
        pass

    async def log_page_view(
        self, path: str, user_agent: str | None, ip_address: str | None
    ) -> PageViewRecord | None:
        """Nothing is recorded."""
        return None

    async def get_page_view_stats(self, limit: int = 10) -> list[PageStat] | None:
        """No statistics without a database."""
        return None

    async def get_total_page_views(self) -> int:
        """No page views without a database."""
        return 0

    async def delete_older_than(self, days: int) -> int:
        """Nothing to delete."""
        return 0

    async def health_check(self) -> bool:
        """An absent database is never healthy."""
        return False
