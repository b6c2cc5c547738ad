"""LanceDB storage layer for dense vector search.

Stores one row per retrievable item (id, text, vector) and answers
nearest-neighbour queries with cosine distance.
"""

from __future__ import annotations

from typing import Any

import lancedb
import pyarrow as pa

from ragfusion.config import EMBEDDING_DIM
from ragfusion.core.errors import DimensionMismatchError


def items_schema(dimension: int = EMBEDDING_DIM) -> pa.Schema:
    """PyArrow schema for the items table."""
    return pa.schema([
        pa.field("id", pa.string()),
        pa.field("text", pa.string()),
        pa.field("vector", pa.list_(pa.float32(), dimension)),
    ])


class LanceStore:
    """LanceDB wrapper for vector storage and retrieval.

    Handles table creation, insertion, deletion, and cosine search.
    """

    TABLE_NAME = "items"

    def __init__(self, db_path: str, dimension: int = EMBEDDING_DIM) -> None:
        """Initialize connection to LanceDB.

        Args:
            db_path: Path to the LanceDB database directory.
            dimension: Vector dimension of the items table.
        """
        self._db: lancedb.DBConnection = lancedb.connect(db_path)
        self._table: lancedb.table.Table | None = None
        self._dimension = dimension

    @property
    def dimension(self) -> int:
        return self._dimension

    def create_or_open(self) -> None:
        """Create the items table if it doesn't exist, or open existing."""
        existing_tables = self._db.list_tables().tables
        if self.TABLE_NAME in existing_tables:
            self._table = self._db.open_table(self.TABLE_NAME)
        else:
            self._table = self._db.create_table(
                self.TABLE_NAME,
                schema=items_schema(self._dimension),
            )

    def insert(self, records: list[dict[str, Any]]) -> None:
        """Insert items into the table.

        Args:
            records: Dicts with 'id', 'text' and 'vector' fields.

        Raises:
            DimensionMismatchError: A vector has the wrong length.
        """
        if not records:
            return
        table = self._require_table()
        rows = []
        for record in records:
            vector = list(record["vector"])
            if len(vector) != self._dimension:
                raise DimensionMismatchError(self._dimension, len(vector))
            rows.append({"id": str(record["id"]), "text": record["text"], "vector": vector})
        table.add(rows)

    def search(self, vector: list[float], limit: int = 30) -> list[dict[str, Any]]:
        """Search for the nearest items by cosine distance.

        Args:
            vector: Query vector.
            limit: Maximum number of results to return.

        Returns:
            Records with 'id', 'text' and '_distance', nearest first.

        Raises:
            DimensionMismatchError: Query vector has the wrong length.
        """
        if len(vector) != self._dimension:
            raise DimensionMismatchError(self._dimension, len(vector))
        table = self._require_table()
        results: list[dict[str, Any]] = (
            table.search(vector).distance_type("cosine").limit(limit).to_list()
        )
        return results

    def delete(self, item_id: str) -> int:
        """Delete one item by id.

        Returns:
            Number of deleted rows.
        """
        table = self._require_table()
        count_before: int = table.count_rows()
        escaped = item_id.replace("'", "''")
        table.delete(f"id = '{escaped}'")
        count_after: int = table.count_rows()
        return count_before - count_after

    def all_items(self) -> list[dict[str, Any]]:
        """Return every stored (id, text) pair."""
        table = self._require_table()
        data = table.to_arrow().select(["id", "text"]).to_pylist()
        return [{"id": row["id"], "text": row["text"]} for row in data]

    def ids(self) -> set[str]:
        table = self._require_table()
        return set(table.to_arrow().column("id").to_pylist())

    def count(self) -> int:
        """Return the number of items in the table."""
        count: int = self._require_table().count_rows()
        return count

    def _require_table(self) -> lancedb.table.Table:
        if self._table is None:
            raise RuntimeError("Table not initialized. Call create_or_open() first.")
        return self._table
