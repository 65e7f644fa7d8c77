import uuid
import json
import functools
from pathlib import Path
import aiosqlite
import numpy as np

from storefront.services.errors import StoreUnavailable


def _store_call(func):
    """Translate driver errors into StoreUnavailable."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except aiosqlite.Error as e:
            raise StoreUnavailable(f"{func.__name__} failed: {e}") from e

    return wrapper


async def init_db(db_path: str):
    """Create tables if they don't exist. Called once on app startup."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    async with aiosqlite.connect(db_path) as db:
        await db.executescript("""
            CREATE TABLE IF NOT EXISTS products (
                id          TEXT PRIMARY KEY,
                name        TEXT NOT NULL,
                description TEXT NOT NULL DEFAULT '',
                price       REAL NOT NULL CHECK (price >= 0),
                image_url   TEXT,
                category    TEXT,
                embedding   TEXT,
                created_at  TEXT NOT NULL DEFAULT (datetime('now'))
            );

            CREATE TABLE IF NOT EXISTS cart_items (
                id          TEXT PRIMARY KEY,
                session_id  TEXT NOT NULL,
                product_id  TEXT NOT NULL REFERENCES products(id) ON DELETE CASCADE,
                quantity    INTEGER NOT NULL CHECK (quantity > 0),
                created_at  TEXT NOT NULL DEFAULT (datetime('now')),
                updated_at  TEXT NOT NULL DEFAULT (datetime('now')),
                UNIQUE (session_id, product_id)
            );

            CREATE INDEX IF NOT EXISTS idx_cart_items_session
                ON cart_items(session_id, created_at);

            CREATE TABLE IF NOT EXISTS events (
                id          INTEGER PRIMARY KEY AUTOINCREMENT,
                session_id  TEXT NOT NULL,
                event_type  TEXT NOT NULL,
                event_data  TEXT,
                created_at  TEXT NOT NULL DEFAULT (datetime('now'))
            );

            CREATE INDEX IF NOT EXISTS idx_events_type
                ON events(event_type, created_at);
        """)
        await db.commit()


def _product_from_row(row) -> dict:
    product = dict(row)
    product.pop("embedding", None)
    product.pop("created_at", None)
    return product


# --- Product catalog ---

@_store_call
async def save_product(db_path: str, product: dict) -> str:
    """Insert or replace a catalog product. Returns its id."""
    product_id = product.get("id") or str(uuid.uuid4())
    async with aiosqlite.connect(db_path) as db:
        await db.execute(
            """
            INSERT INTO products (id, name, description, price, image_url, category)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                name = excluded.name,
                description = excluded.description,
                price = excluded.price,
                image_url = excluded.image_url,
                category = excluded.category
            """,
            (
                product_id,
                product["name"],
                product.get("description", ""),
                product["price"],
                product.get("image_url"),
                product.get("category"),
            ),
        )
        await db.commit()
    return product_id


@_store_call
async def get_product(db_path: str, product_id: str) -> dict | None:
    """Fetch a product by ID. Returns None if not found."""
    async with aiosqlite.connect(db_path) as db:
        db.row_factory = aiosqlite.Row
        cursor = await db.execute("SELECT * FROM products WHERE id = ?", (product_id,))
        row = await cursor.fetchone()
        if row is None:
            return None
        return _product_from_row(row)


@_store_call
async def list_products(db_path: str, category: str | None = None) -> list[dict]:
    """List catalog products, newest first, optionally filtered by category."""
    async with aiosqlite.connect(db_path) as db:
        db.row_factory = aiosqlite.Row
        if category:
            cursor = await db.execute(
                "SELECT * FROM products WHERE category = ? ORDER BY created_at DESC, name",
                (category,),
            )
        else:
            cursor = await db.execute("SELECT * FROM products ORDER BY created_at DESC, name")
        rows = await cursor.fetchall()
        return [_product_from_row(row) for row in rows]


@_store_call
async def save_embedding(db_path: str, product_id: str, embedding: list[float]) -> bool:
    """Attach an embedding to a product. Returns False if the product is unknown."""
    async with aiosqlite.connect(db_path) as db:
        cursor = await db.execute(
            "UPDATE products SET embedding = ? WHERE id = ?",
            (json.dumps(embedding), product_id),
        )
        await db.commit()
        return cursor.rowcount > 0


# --- Similarity lookup ---

def _rank_by_similarity(
    query: np.ndarray, rows: list, match_threshold: float, match_count: int
) -> list[dict]:
    scored = []
    query_norm = np.linalg.norm(query)
    if query_norm == 0:
        return []
    for row in rows:
        vector = np.asarray(json.loads(row["embedding"]), dtype=float)
        if vector.shape != query.shape:
            continue
        norm = np.linalg.norm(vector)
        if norm == 0:
            continue
        similarity = float(np.clip(np.dot(query, vector) / (query_norm * norm), 0.0, 1.0))
        if similarity >= match_threshold:
            product = _product_from_row(row)
            product["similarity"] = similarity
            scored.append(product)
    scored.sort(key=lambda p: p["similarity"], reverse=True)
    return scored[:match_count]


@_store_call
async def match_products(
    db_path: str, query_embedding: list[float], match_threshold: float, match_count: int
) -> list[dict]:
    """Products whose embedding is closest to ``query_embedding``, best first."""
    async with aiosqlite.connect(db_path) as db:
        db.row_factory = aiosqlite.Row
        cursor = await db.execute("SELECT * FROM products WHERE embedding IS NOT NULL")
        rows = await cursor.fetchall()
    return _rank_by_similarity(
        np.asarray(query_embedding, dtype=float), rows, match_threshold, match_count
    )


@_store_call
async def find_similar_products(
    db_path: str, product_id: str, match_threshold: float, match_count: int
) -> list[dict]:
    """Products similar to ``product_id``, excluding the product itself."""
    async with aiosqlite.connect(db_path) as db:
        db.row_factory = aiosqlite.Row
        cursor = await db.execute("SELECT embedding FROM products WHERE id = ?", (product_id,))
        source = await cursor.fetchone()
        if source is None or source["embedding"] is None:
            return []
        cursor = await db.execute(
            "SELECT * FROM products WHERE embedding IS NOT NULL AND id != ?",
            (product_id,),
        )
        rows = await cursor.fetchall()
    query = np.asarray(json.loads(source["embedding"]), dtype=float)
    return _rank_by_similarity(query, rows, match_threshold, match_count)


# --- Cart lines ---

@_store_call
async def get_cart_lines(db_path: str, session_id: str) -> list[dict]:
    """Load every line of a session's cart joined with its product, oldest first."""
    async with aiosqlite.connect(db_path) as db:
        db.row_factory = aiosqlite.Row
        cursor = await db.execute(
            """
            SELECT c.id, c.product_id, c.quantity,
                   p.name AS product_name, p.price AS product_price,
                   p.image_url AS product_image_url
            FROM cart_items c
            LEFT JOIN products p ON p.id = c.product_id
            WHERE c.session_id = ?
            ORDER BY c.created_at ASC, c.rowid ASC
            """,
            (session_id,),
        )
        rows = await cursor.fetchall()
        return [dict(row) for row in rows]


@_store_call
async def add_cart_quantity(db_path: str, session_id: str, product_id: str, quantity: int) -> str:
    """Insert a line or increment the existing one in a single statement.

    Returns the id of the line that now holds the product.
    """
    async with aiosqlite.connect(db_path) as db:
        await db.execute(
            """
            INSERT INTO cart_items (id, session_id, product_id, quantity)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(session_id, product_id) DO UPDATE SET
                quantity = cart_items.quantity + excluded.quantity,
                updated_at = datetime('now')
            """,
            (str(uuid.uuid4()), session_id, product_id, quantity),
        )
        await db.commit()
        cursor = await db.execute(
            "SELECT id FROM cart_items WHERE session_id = ? AND product_id = ?",
            (session_id, product_id),
        )
        row = await cursor.fetchone()
        return row[0]


@_store_call
async def update_cart_line(db_path: str, session_id: str, line_id: str, quantity: int):
    """Lines belonging to another session are left untouched."""
    async with aiosqlite.connect(db_path) as db:
        await db.execute(
            """
            UPDATE cart_items SET quantity = ?, updated_at = datetime('now')
            WHERE id = ? AND session_id = ?
            """,
            (quantity, line_id, session_id),
        )
        await db.commit()


@_store_call
async def delete_cart_line(db_path: str, session_id: str, line_id: str):
    async with aiosqlite.connect(db_path) as db:
        await db.execute(
            "DELETE FROM cart_items WHERE id = ? AND session_id = ?",
            (line_id, session_id),
        )
        await db.commit()


@_store_call
async def delete_cart_lines(db_path: str, session_id: str):
    """Remove every line belonging to a session."""
    async with aiosqlite.connect(db_path) as db:
        await db.execute("DELETE FROM cart_items WHERE session_id = ?", (session_id,))
        await db.commit()


# --- Dashboard aggregates ---

@_store_call
async def count_products(db_path: str) -> int:
    async with aiosqlite.connect(db_path) as db:
        cursor = await db.execute("SELECT COUNT(*) FROM products")
        row = await cursor.fetchone()
        return row[0]


@_store_call
async def count_active_sessions(db_path: str, minutes: int) -> int:
    """Distinct sessions with a cart line touched in the last ``minutes``."""
    async with aiosqlite.connect(db_path) as db:
        cursor = await db.execute(
            "SELECT COUNT(DISTINCT session_id) FROM cart_items WHERE updated_at >= datetime('now', ?)",
            (f"-{minutes} minutes",),
        )
        row = await cursor.fetchone()
        return row[0]


@_store_call
async def popular_products(db_path: str, days: int, limit: int = 5) -> list[dict]:
    """Products added to the most carts in the last ``days``."""
    async with aiosqlite.connect(db_path) as db:
        db.row_factory = aiosqlite.Row
        cursor = await db.execute(
            """
            SELECT c.product_id AS id, COALESCE(p.name, 'Unknown') AS name,
                   COUNT(*) AS additions
            FROM cart_items c
            LEFT JOIN products p ON p.id = c.product_id
            WHERE c.created_at >= datetime('now', ?)
            GROUP BY c.product_id
            ORDER BY additions DESC, name ASC
            LIMIT ?
            """,
            (f"-{days} days", limit),
        )
        rows = await cursor.fetchall()
        return [dict(row) for row in rows]


@_store_call
async def category_counts(db_path: str) -> list[tuple[str, int]]:
    async with aiosqlite.connect(db_path) as db:
        cursor = await db.execute(
            """
            SELECT COALESCE(category, 'Sin categoría') AS name, COUNT(*)
            FROM products
            GROUP BY name
            ORDER BY MIN(rowid)
            """
        )
        rows = await cursor.fetchall()
        return [(row[0], row[1]) for row in rows]


# --- Event Logging ---

@_store_call
async def log_event(
    db_path: str,
    session_id: str,
    event_type: str,
    event_data: dict | None = None,
):
    """Log an analytics event (assistant_query, checkout_completed, etc.)."""
    async with aiosqlite.connect(db_path) as db:
        await db.execute(
            "INSERT INTO events (session_id, event_type, event_data) VALUES (?, ?, ?)",
            (session_id, event_type, json.dumps(event_data) if event_data else None),
        )
        await db.commit()


@_store_call
async def event_stats(db_path: str, event_type: str) -> dict:
    """Count of ``event_type`` events and their mean ``response_ms``."""
    async with aiosqlite.connect(db_path) as db:
        cursor = await db.execute(
            """
            SELECT COUNT(*), AVG(json_extract(event_data, '$.response_ms'))
            FROM events WHERE event_type = ?
            """,
            (event_type,),
        )
        total, avg_ms = await cursor.fetchone()
        return {"total": total, "avg_response_ms": avg_ms or 0}


@_store_call
async def events_by_hour(db_path: str, event_type: str) -> dict[int, int]:
    async with aiosqlite.connect(db_path) as db:
        cursor = await db.execute(
            """
            SELECT CAST(strftime('%H', created_at) AS INTEGER) AS hour, COUNT(*)
            FROM events WHERE event_type = ?
            GROUP BY hour
            """,
            (event_type,),
        )
        rows = await cursor.fetchall()
        return {row[0]: row[1] for row in rows}
