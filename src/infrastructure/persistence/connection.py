"""
infrastructure.persistence.connection - Long-lived async SQLite connection manager.

Wraps aiosqlite with:
    - lazy connect on first use, bounded retries with a fixed backoff
    - a liveness check (SELECT 1) that triggers a transparent reconnect
    - explicit transaction control with a single in-flight transaction

The connection runs in autocommit mode (isolation_level=None); every write
that must be atomic goes through begin()/commit() or transaction().
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import aiosqlite

from domain.exceptions import EntityStoreError, StoreConnectionError, TransactionError

logger = logging.getLogger(__name__)


class AsyncSQLiteConnection:
    """Async SQLite connection provider with retry, liveness checks and transactions.

    One instance is shared per process. Transactions are serialized with an
    asyncio.Lock; a task that calls begin() while it already owns the open
    transaction gets a TransactionError instead of a deadlock.
    """

    def __init__(
        self,
        db_path: str,
        max_retries: int = 3,
        retry_backoff: float = 0.5,
        statement_cache_size: int = 128,
        busy_timeout: float = 5.0,
    ):
        self._db_path = db_path
        self._max_retries = max(1, max_retries)
        self._retry_backoff = retry_backoff
        self._statement_cache_size = statement_cache_size
        self._busy_timeout = busy_timeout

        self._conn: Optional[aiosqlite.Connection] = None
        self._tx_lock = asyncio.Lock()
        self._tx_owner: Optional[asyncio.Task] = None
        self._in_transaction = False

        self._connect_attempts = 0
        self._reconnects = 0

    @property
    def in_transaction(self) -> bool:
        return self._in_transaction

    def owns_transaction(self) -> bool:
        """True when the calling task opened the transaction currently in flight."""
        return self._in_transaction and self._tx_owner is asyncio.current_task()

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def _open(self) -> aiosqlite.Connection:
        """Open a new connection, retrying a bounded number of times."""
        last_error: Optional[BaseException] = None
        for attempt in range(1, self._max_retries + 1):
            self._connect_attempts += 1
            try:
                conn = await aiosqlite.connect(
                    self._db_path,
                    isolation_level=None,
                    cached_statements=self._statement_cache_size,
                    timeout=self._busy_timeout,
                )
                conn.row_factory = aiosqlite.Row
                await conn.execute("PRAGMA foreign_keys = ON")
                logger.info("Connected to SQLite database at %s", self._db_path)
                return conn
            except (sqlite3.Error, OSError) as e:
                last_error = e
                logger.warning(
                    "SQLite connection attempt %d/%d failed: %s",
                    attempt, self._max_retries, e,
                )
                if attempt < self._max_retries:
                    await asyncio.sleep(self._retry_backoff)

        raise StoreConnectionError(
            f"Could not connect to {self._db_path} after {self._max_retries} attempts",
            context={"db_path": self._db_path, "attempts": self._max_retries},
        ) from last_error

    async def is_alive(self) -> bool:
        """Liveness check. False when there is no connection or it stopped answering."""
        if self._conn is None:
            return False
        try:
            async with self._conn.execute("SELECT 1") as cursor:
                await cursor.fetchone()
            return True
        except (sqlite3.Error, ValueError) as e:
            # aiosqlite raises ValueError once its worker thread is gone
            logger.warning("SQLite liveness check failed: %s", e)
            return False

    async def get(self) -> aiosqlite.Connection:
        """Return a live connection, connecting or reconnecting as needed."""
        if self._conn is None:
            self._conn = await self._open()
            return self._conn

        if await self.is_alive():
            return self._conn

        if self._in_transaction:
            raise StoreConnectionError(
                "Connection lost during an open transaction",
                context={"db_path": self._db_path},
            )

        logger.warning("Stale SQLite connection detected, reconnecting")
        await self._discard()
        self._reconnects += 1
        self._conn = await self._open()
        return self._conn

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield a live connection for reads or single-statement writes."""
        conn = await self.get()
        yield conn

    async def _discard(self) -> None:
        if self._conn is None:
            return
        try:
            await self._conn.close()
        except (sqlite3.Error, ValueError):
            pass
        self._conn = None

    async def close(self) -> None:
        """Roll back any open transaction and close the connection."""
        if self._in_transaction:
            logger.warning("Closing store with an open transaction, rolling back")
            await self.rollback()
        await self._discard()

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def begin(self) -> None:
        """Start a transaction.

        Raises:
            TransactionError: If the calling task already has a transaction open.
            EntityStoreError: If the driver rejects BEGIN.
        """
        current = asyncio.current_task()
        if self._in_transaction and self._tx_owner is current:
            raise TransactionError(
                "Nested transactions are not supported",
                context={"db_path": self._db_path},
            )

        await self._tx_lock.acquire()
        try:
            conn = await self.get()
            await conn.execute("BEGIN")
        except sqlite3.Error as e:
            self._tx_lock.release()
            logger.error("BEGIN failed on %s: %s", self._db_path, e)
            raise EntityStoreError("begin", "BEGIN", e) from e
        except BaseException:
            self._tx_lock.release()
            raise

        self._in_transaction = True
        self._tx_owner = current

    async def commit(self) -> None:
        """Commit the open transaction. A failed COMMIT is rolled back."""
        if not self._in_transaction:
            raise TransactionError("commit() called without an open transaction")
        try:
            await self._conn.execute("COMMIT")
        except sqlite3.Error as e:
            logger.error("COMMIT failed on %s, rolling back: %s", self._db_path, e)
            await self._rollback_quietly()
            raise EntityStoreError("commit", "COMMIT", e) from e
        finally:
            self._finish_transaction()

    async def rollback(self) -> bool:
        """Roll back the open transaction. Returns False when none was open."""
        if not self._in_transaction:
            return False
        try:
            await self._conn.execute("ROLLBACK")
        except sqlite3.Error as e:
            raise EntityStoreError("rollback", "ROLLBACK", e) from e
        except ValueError as e:
            # aiosqlite worker is gone; SQLite discards the transaction with the connection
            logger.warning("Connection closed before ROLLBACK, transaction discarded: %s", e)
        finally:
            self._finish_transaction()
        return True

    async def _rollback_quietly(self) -> None:
        try:
            await self._conn.execute("ROLLBACK")
        except (sqlite3.Error, ValueError) as e:
            # no transaction left to undo once SQLite aborted the COMMIT itself
            logger.warning("ROLLBACK after failed COMMIT did not run: %s", e)

    def _finish_transaction(self) -> None:
        self._in_transaction = False
        self._tx_owner = None
        if self._tx_lock.locked():
            self._tx_lock.release()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """begin/commit around the block, rollback on any exception."""
        await self.begin()
        try:
            yield self._conn
        except BaseException:
            await self.rollback()
            raise
        await self.commit()

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def stats(self) -> dict:
        return {
            "db_path": self._db_path,
            "connected": self._conn is not None,
            "in_transaction": self._in_transaction,
            "connect_attempts": self._connect_attempts,
            "reconnects": self._reconnects,
        }
