# owns the sqlite file: schema bootstrap and connections for the db package
import asyncio
import os.path
from contextlib import asynccontextmanager
from sqlite3 import Row
from typing import List

import aiosqlite

from utils import config
from utils.logger import get_logger

_logger = get_logger(__name__)

DB_PATH = config.DB_PATH

_SQL_DIR = os.path.dirname(os.path.abspath(__file__))
SCHEMA_SCRIPT = os.path.join(_SQL_DIR, "tables.sql")
SEED_SCRIPT = os.path.join(_SQL_DIR, "seed.sql")

REQUIRED_TABLES = ("users", "products", "orders", "orderlines", "announcement")

_initialized = False
_init_lock = asyncio.Lock()


async def _run_script(conn: aiosqlite.Connection, path: str) -> None:
    if not os.path.exists(path) or os.path.getsize(path) == 0:
        _logger.warning(f"Init script {os.path.basename(path)} is missing or empty")
        return
    _logger.info(f"Running {os.path.basename(path)}...")
    with open(path, "r", encoding="utf-8") as f:
        await conn.executescript(f.read())


async def _missing_tables(conn: aiosqlite.Connection) -> List[str]:
    cur = await conn.execute("SELECT name FROM sqlite_master WHERE type = 'table';")
    present = {row["name"] for row in await cur.fetchall()}
    await cur.close()
    return [t for t in REQUIRED_TABLES if t not in present]


async def _bootstrap(conn: aiosqlite.Connection) -> None:
    """
    Fresh file: create the schema and load the seed roster/catalog.
    Partial schema: create what is missing, leave existing rows alone.
    """
    missing = await _missing_tables(conn)
    if not missing:
        return
    if len(missing) == len(REQUIRED_TABLES):
        _logger.info(f"Creating database at {DB_PATH}...")
        await _run_script(conn, SCHEMA_SCRIPT)
        await _run_script(conn, SEED_SCRIPT)
    else:
        _logger.warning(f"Tables missing from {DB_PATH}: {', '.join(missing)}; creating them")
        await _run_script(conn, SCHEMA_SCRIPT)
    await conn.commit()


@asynccontextmanager
async def connect() -> aiosqlite.Connection:
    """Yield an aiosqlite connection (Row factory, foreign keys on).

    The first connection of the process makes sure the schema exists.
    """
    global _initialized
    db_dir = os.path.dirname(DB_PATH)
    if db_dir:
        os.makedirs(db_dir, exist_ok=True)

    conn = await aiosqlite.connect(DB_PATH)
    conn.row_factory = Row
    await conn.execute("PRAGMA foreign_keys = ON;")

    if not _initialized:
        async with _init_lock:
            if not _initialized:
                await _bootstrap(conn)
                _initialized = True
    try:
        yield conn
    finally:
        await conn.close()
