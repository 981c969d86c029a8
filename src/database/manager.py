"""
Database manager for PostgreSQL operations
"""

import asyncpg
import logging
from typing import List, Dict, Optional, Iterable

from .models import CredentialRecord, DiagnosticRecord, BrightnessRecord

logger = logging.getLogger(__name__)


class CredentialNotFoundError(LookupError):
    """No stored credential for the requested host/username"""

    def __init__(self, host: str, username: str):
        super().__init__(f"No stored credential for {username}@{host}")
        self.host = host
        self.username = username


class DatabaseManager:
    """Manages PostgreSQL storage of repeater credentials and diagnostic history"""

    def __init__(self, config: Dict):
        self.config = config
        self.pool = None
        db = config.get('database') or {}
        self.enabled = bool(db.get('enabled', False))
        self.db_host = db.get('host')
        self.db_port = db.get('port')
        self.db_name = db.get('database')
        self.db_user = db.get('username')
        self.db_password = db.get('password')

    @property
    def is_available(self) -> bool:
        return self.enabled and self.pool is not None

    async def initialize(self):
        """Initialize database connection pool and schema"""
        if not self.enabled:
            logger.info("Database disabled - credentials come from config, history is not persisted")
            return

        try:
            self.pool = await asyncpg.create_pool(
                host=self.db_host,
                port=self.db_port,
                database=self.db_name,
                user=self.db_user,
                password=self.db_password,
                min_size=1,
                max_size=5,
                command_timeout=10
            )

            logger.info("Database connection pool created")

            await self.create_schema()
            logger.info("Database schema initialized")

        except Exception as e:
            logger.error(f"Database initialization failed: {e}")
            raise

    async def create_schema(self):
        """Create database tables if they don't exist"""
        schema_sql = """
        CREATE TABLE IF NOT EXISTS credentials (
            host TEXT NOT NULL,
            username TEXT NOT NULL,
            password TEXT NOT NULL,
            updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
            PRIMARY KEY (host, username)
        );

        CREATE TABLE IF NOT EXISTS diagnostic_results (
            result_id TEXT PRIMARY KEY,
            run_id TEXT NOT NULL,
            mismatch_type TEXT NOT NULL,
            details TEXT NOT NULL,
            ra2_device_name TEXT,
            homekit_device_name TEXT,
            ra2_location TEXT,
            homekit_room TEXT,
            ts TIMESTAMPTZ NOT NULL
        );

        CREATE TABLE IF NOT EXISTS brightness_results (
            result_id TEXT PRIMARY KEY,
            run_id TEXT NOT NULL,
            integration_id INTEGER NOT NULL,
            device_name TEXT NOT NULL,
            commanded_level INTEGER NOT NULL,
            observed_level DOUBLE PRECISION NOT NULL,
            trim_status TEXT NOT NULL,
            notes TEXT NOT NULL,
            ts TIMESTAMPTZ NOT NULL
        );

        CREATE INDEX IF NOT EXISTS idx_diagnostic_results_ts
        ON diagnostic_results(ts DESC);

        CREATE INDEX IF NOT EXISTS idx_brightness_results_ts
        ON brightness_results(ts DESC);
        """

        async with self.pool.acquire() as conn:
            await conn.execute(schema_sql)

    # ---- credential store ----

    async def save_credentials(self, host: str, username: str, password: str) -> bool:
        """Insert or replace the password for host/username"""
        if not self.is_available:
            return False
        try:
            async with self.pool.acquire() as conn:
                await conn.execute("""
                    INSERT INTO credentials (host, username, password, updated_at)
                    VALUES ($1, $2, $3, CURRENT_TIMESTAMP)
                    ON CONFLICT (host, username) DO UPDATE SET
                        password = $3,
                        updated_at = CURRENT_TIMESTAMP
                """, host, username, password)
            logger.info(f"Saved credentials for {username}@{host}")
            return True
        except Exception as e:
            logger.error(f"Failed to save credentials for {username}@{host}: {e}")
            return False

    async def _fetch_credentials(self, host: str, username: str) -> Optional[CredentialRecord]:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow("""
                SELECT host, username, password, updated_at
                FROM credentials
                WHERE host = $1 AND username = $2
            """, host, username)
        if row is None:
            return None
        return CredentialRecord(
            host=row['host'],
            username=row['username'],
            password=row['password'],
            updated_at=row['updated_at']
        )

    async def retrieve_credentials(self, host: str, username: str) -> Optional[str]:
        """Stored password, or None when absent or the store is unreachable"""
        if not self.is_available:
            return None
        try:
            record = await self._fetch_credentials(host, username)
            return record.password if record else None
        except Exception as e:
            logger.error(f"Failed to retrieve credentials for {username}@{host}: {e}")
            return None

    async def get_credentials(self, host: str, username: str) -> str:
        """Strict lookup; raises CredentialNotFoundError"""
        password = await self.retrieve_credentials(host, username)
        if password is None:
            raise CredentialNotFoundError(host, username)
        return password

    async def credentials_exist(self, host: str, username: str) -> bool:
        return await self.retrieve_credentials(host, username) is not None

    async def delete_credentials(self, host: str, username: str) -> bool:
        if not self.is_available:
            return False
        try:
            async with self.pool.acquire() as conn:
                status = await conn.execute("""
                    DELETE FROM credentials WHERE host = $1 AND username = $2
                """, host, username)
            # asyncpg returns the command tag, e.g. "DELETE 1"
            deleted = status.endswith(" 1")
            if deleted:
                logger.info(f"Deleted credentials for {username}@{host}")
            return deleted
        except Exception as e:
            logger.error(f"Failed to delete credentials for {username}@{host}: {e}")
            return False

    # ---- result history ----

    async def store_diagnostic_results(self, run_id: str, results: Iterable) -> int:
        """Persist a reconciliation run; returns rows written"""
        if not self.is_available:
            return 0
        rows = [
            (r.result_id, run_id, r.mismatch_type.value, r.details, r.ra2_device_name,
             r.homekit_device_name, r.ra2_location, r.homekit_room, r.timestamp)
            for r in results
        ]
        if not rows:
            return 0
        try:
            async with self.pool.acquire() as conn:
                await conn.executemany("""
                    INSERT INTO diagnostic_results (
                        result_id, run_id, mismatch_type, details, ra2_device_name,
                        homekit_device_name, ra2_location, homekit_room, ts
                    ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
                    ON CONFLICT (result_id) DO NOTHING
                """, rows)
            logger.info(f"Stored {len(rows)} diagnostic results for run {run_id}")
            return len(rows)
        except Exception as e:
            logger.error(f"Failed to store diagnostic results for run {run_id}: {e}")
            return 0

    async def store_brightness_results(self, run_id: str, results: Iterable) -> int:
        """Persist a brightness test run; returns rows written"""
        if not self.is_available:
            return 0
        rows = [
            (r.result_id, run_id, r.device.integration_id, r.device.name, r.commanded_level,
             r.observed_level, r.trim_status.value, r.notes, r.timestamp)
            for r in results
        ]
        if not rows:
            return 0
        try:
            async with self.pool.acquire() as conn:
                await conn.executemany("""
                    INSERT INTO brightness_results (
                        result_id, run_id, integration_id, device_name, commanded_level,
                        observed_level, trim_status, notes, ts
                    ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
                    ON CONFLICT (result_id) DO NOTHING
                """, rows)
            logger.info(f"Stored {len(rows)} brightness results for run {run_id}")
            return len(rows)
        except Exception as e:
            logger.error(f"Failed to store brightness results for run {run_id}: {e}")
            return 0

    async def get_recent_diagnostic_results(self, limit: int = 100) -> List[DiagnosticRecord]:
        if not self.is_available:
            return []
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch("""
                    SELECT result_id, run_id, mismatch_type, details, ra2_device_name,
                           homekit_device_name, ra2_location, homekit_room, ts
                    FROM diagnostic_results
                    ORDER BY ts DESC
                    LIMIT $1
                """, limit)
            return [DiagnosticRecord(**dict(row)) for row in rows]
        except Exception as e:
            logger.error(f"Failed to get recent diagnostic results: {e}")
            return []

    async def get_recent_brightness_results(self, limit: int = 100) -> List[BrightnessRecord]:
        if not self.is_available:
            return []
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch("""
                    SELECT result_id, run_id, integration_id, device_name, commanded_level,
                           observed_level, trim_status, notes, ts
                    FROM brightness_results
                    ORDER BY ts DESC
                    LIMIT $1
                """, limit)
            return [BrightnessRecord(**dict(row)) for row in rows]
        except Exception as e:
            logger.error(f"Failed to get recent brightness results: {e}")
            return []

    async def close(self):
        """Close database connection pool"""
        if self.pool:
            await self.pool.close()
            self.pool = None
            logger.info("Database connection pool closed")
