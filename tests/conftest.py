"""Shared fixtures: an in-memory host schema behind the Database interface."""

import json
import re
import sqlite3
from typing import Any

import pytest

from reverse_relations.core.field import ReverseEntriesField, ReverseUsersField
from reverse_relations.db.models import FieldConfig

SCHEMA = """
CREATE TABLE elements (
    id INTEGER PRIMARY KEY,
    canonical_id INTEGER,
    type TEXT NOT NULL,
    enabled INTEGER NOT NULL DEFAULT 1,
    date_deleted TEXT
);
CREATE TABLE elements_sites (
    element_id INTEGER NOT NULL,
    site_id INTEGER NOT NULL,
    enabled INTEGER NOT NULL DEFAULT 1
);
CREATE TABLE relations (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    field_id INTEGER NOT NULL,
    source_id INTEGER NOT NULL,
    source_site_id INTEGER,
    target_id INTEGER NOT NULL,
    sort_order INTEGER NOT NULL DEFAULT 1
);
CREATE TABLE fields (
    id INTEGER PRIMARY KEY,
    uid TEXT NOT NULL UNIQUE,
    name TEXT NOT NULL,
    handle TEXT NOT NULL,
    type TEXT NOT NULL,
    settings TEXT
);
CREATE TABLE users (id INTEGER PRIMARY KEY);
CREATE TABLE usergroups (id INTEGER PRIMARY KEY, uid TEXT NOT NULL, name TEXT);
CREATE TABLE usergroups_users (group_id INTEGER NOT NULL, user_id INTEGER NOT NULL);
CREATE TABLE sections (id INTEGER PRIMARY KEY, uid TEXT NOT NULL);
CREATE TABLE entries (id INTEGER PRIMARY KEY, section_id INTEGER);
CREATE TABLE categorygroups (id INTEGER PRIMARY KEY, uid TEXT NOT NULL);
CREATE TABLE categories (id INTEGER PRIMARY KEY, group_id INTEGER);
"""

_PLACEHOLDER = re.compile(r"\$(\d+)")


class SqliteDatabase:
    """Runs the generated PostgreSQL-style queries on SQLite.

    ``$n`` placeholders become SQLite's numbered ``?n`` form.
    """

    def __init__(self):
        self.conn = sqlite3.connect(":memory:")
        self.conn.row_factory = sqlite3.Row
        self.conn.executescript(SCHEMA)
        self.queries: list[str] = []

    def _run(self, query: str, args: tuple[Any, ...]) -> list[sqlite3.Row]:
        self.queries.append(query)
        return self.conn.execute(_PLACEHOLDER.sub(r"?\1", query), args).fetchall()

    async def fetch(self, query: str, *args: Any, timeout: float | None = None):
        return self._run(query, args)

    async def fetchrow(self, query: str, *args: Any, timeout: float | None = None):
        rows = self._run(query, args)
        return rows[0] if rows else None

    async def fetchval(self, query: str, *args: Any, column: int = 0, timeout: float | None = None):
        row = await self.fetchrow(query, *args)
        return row[column] if row else None

    # Seeding helpers

    def add_element(
        self,
        element_id: int,
        type: str,
        canonical_id: int | None = None,
        enabled: bool = True,
        date_deleted: str | None = None,
        sites: tuple[int, ...] = (),
    ) -> None:
        self.conn.execute(
            "INSERT INTO elements (id, canonical_id, type, enabled, date_deleted) VALUES (?, ?, ?, ?, ?)",
            (element_id, canonical_id, type, int(enabled), date_deleted),
        )
        for site_id in sites:
            self.conn.execute(
                "INSERT INTO elements_sites (element_id, site_id) VALUES (?, ?)",
                (element_id, site_id),
            )

    def add_user(self, user_id: int, group_ids: tuple[int, ...] = (), **kwargs: Any) -> None:
        self.add_element(user_id, "users", **kwargs)
        self.conn.execute("INSERT INTO users (id) VALUES (?)", (user_id,))
        for group_id in group_ids:
            self.conn.execute(
                "INSERT INTO usergroups_users (group_id, user_id) VALUES (?, ?)",
                (group_id, user_id),
            )

    def add_user_group(self, group_id: int, uid: str) -> None:
        self.conn.execute(
            "INSERT INTO usergroups (id, uid, name) VALUES (?, ?, ?)",
            (group_id, uid, uid.title()),
        )

    def add_section(self, section_id: int, uid: str) -> None:
        self.conn.execute("INSERT INTO sections (id, uid) VALUES (?, ?)", (section_id, uid))

    def add_entry(self, entry_id: int, section_id: int | None = None, sites: tuple[int, ...] = (1,), **kwargs: Any) -> None:
        self.add_element(entry_id, "entries", sites=sites, **kwargs)
        self.conn.execute(
            "INSERT INTO entries (id, section_id) VALUES (?, ?)", (entry_id, section_id)
        )

    def add_relation(
        self,
        field_id: int,
        source_id: int,
        target_id: int,
        sort_order: int = 1,
        source_site_id: int | None = None,
    ) -> None:
        self.conn.execute(
            "INSERT INTO relations (field_id, source_id, source_site_id, target_id, sort_order) "
            "VALUES (?, ?, ?, ?, ?)",
            (field_id, source_id, source_site_id, target_id, sort_order),
        )

    def add_field(
        self,
        field_id: int,
        uid: str,
        handle: str,
        type: str,
        settings: dict[str, Any] | None = None,
    ) -> None:
        self.conn.execute(
            "INSERT INTO fields (id, uid, name, handle, type, settings) VALUES (?, ?, ?, ?, ?, ?)",
            (field_id, uid, handle.title(), handle, type, json.dumps(settings or {})),
        )


FORWARD_USERS_FIELD_ID = 1
REVERSE_USERS_FIELD_ID = 2
FORWARD_ENTRIES_FIELD_ID = 3
REVERSE_ENTRIES_FIELD_ID = 4


@pytest.fixture
def db():
    """Host schema with forward and reverse fields for users and entries."""
    database = SqliteDatabase()
    database.add_field(FORWARD_USERS_FIELD_ID, "fwd-users", "contributors", "fields.Users")
    database.add_field(
        REVERSE_USERS_FIELD_ID,
        "rev-users",
        "contributedTo",
        "reverse_relations.ReverseUsers",
        {"target_field_uid": "fwd-users", "input_sources": "*"},
    )
    database.add_field(FORWARD_ENTRIES_FIELD_ID, "fwd-entries", "relatedEntries", "fields.Entries")
    database.add_field(
        REVERSE_ENTRIES_FIELD_ID,
        "rev-entries",
        "referencedBy",
        "reverse_relations.ReverseEntries",
        {"target_field_uid": "fwd-entries", "input_sources": "*"},
    )
    yield database
    database.conn.close()


def users_config(**settings: Any) -> FieldConfig:
    data = {
        "id": REVERSE_USERS_FIELD_ID,
        "uid": "rev-users",
        "name": "Contributed To",
        "handle": "contributedTo",
        "type": "reverse_relations.ReverseUsers",
        "target_field_uid": "fwd-users",
        "input_sources": "*",
    }
    data.update(settings)
    return FieldConfig(**data)


def entries_config(**settings: Any) -> FieldConfig:
    data = {
        "id": REVERSE_ENTRIES_FIELD_ID,
        "uid": "rev-entries",
        "name": "Referenced By",
        "handle": "referencedBy",
        "type": "reverse_relations.ReverseEntries",
        "target_field_uid": "fwd-entries",
        "input_sources": "*",
    }
    data.update(settings)
    return FieldConfig(**data)


@pytest.fixture
def users_field_factory(db):
    def make(**settings: Any) -> ReverseUsersField:
        return ReverseUsersField.from_database(users_config(**settings), db)

    return make


@pytest.fixture
def entries_field_factory(db):
    def make(**settings: Any) -> ReverseEntriesField:
        return ReverseEntriesField.from_database(entries_config(**settings), db)

    return make
