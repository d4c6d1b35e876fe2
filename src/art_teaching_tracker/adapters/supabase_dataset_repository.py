"""Supabase repository for bulk dataset access."""

from dataclasses import dataclass

from supabase import Client

from art_teaching_tracker.domain.dataset import COLLECTIONS, Collection, Row
from art_teaching_tracker.services.backup import DatasetRepository

PAGE_SIZE = 1000
NIL_UUID = "00000000-0000-0000-0000-000000000000"


@dataclass
class SupabaseDatasetRepository(DatasetRepository):
    """Supabase implementation for snapshot export and restore."""

    client: Client

    def list_rows(self, collection: Collection) -> list[Row]:
        """Return every row of a collection ordered by id."""
        return fetch_all_rows(self.client, COLLECTIONS[collection].table, "*")

    def delete_all(self, collection: Collection) -> None:
        """Delete every row of a collection."""
        # PostgREST refuses an unfiltered delete.
        self.client.table(COLLECTIONS[collection].table).delete().neq(
            "id", NIL_UUID
        ).execute()

    def insert_rows(self, collection: Collection, rows: list[Row]) -> int:
        """Insert rows with their original ids."""
        if not rows:
            return 0
        response = (
            self.client.table(COLLECTIONS[collection].table).insert(rows).execute()
        )
        if not response.data:
            raise RuntimeError(f"Failed to insert {collection} rows")
        return len(response.data)


def fetch_all_rows(client: Client, table: str, columns: str) -> list[Row]:
    """Read a whole table page by page, ordered by id."""
    rows: list[Row] = []
    start = 0
    while True:
        response = (
            client.table(table)
            .select(columns)
            .order("id", desc=False)
            .range(start, start + PAGE_SIZE - 1)
            .execute()
        )
        page = response.data or []
        rows.extend(page)
        if len(page) < PAGE_SIZE:
            return rows
        start += PAGE_SIZE
