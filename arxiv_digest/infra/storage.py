"""Readers for externally maintained tags and digest results."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from threading import Lock
from typing import Dict

from ..engine.records import DigestResult


class SQLiteManager:
    """Manage SQLite connections with basic schema guarantees."""

    def __init__(self) -> None:
        self._connections: Dict[Path, sqlite3.Connection] = {}
        self._lock = Lock()

    def connect(self, path: Path) -> sqlite3.Connection:
        path.parent.mkdir(parents=True, exist_ok=True)
        with self._lock:
            if path not in self._connections:
                conn = sqlite3.connect(path, check_same_thread=False)
                conn.row_factory = sqlite3.Row
                self._connections[path] = conn
                self._ensure_schema(conn)
            return self._connections[path]

    def _ensure_schema(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS paper_tags (
                user_id TEXT NOT NULL,
                name TEXT NOT NULL,
                paper_id TEXT NOT NULL,
                created_at TEXT DEFAULT (datetime('now')),
                PRIMARY KEY (user_id, name, paper_id)
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS digest_results (
                digest_id TEXT NOT NULL,
                arxiv_id TEXT NOT NULL,
                reason TEXT DEFAULT '',
                relevancy_score REAL DEFAULT 0,
                PRIMARY KEY (digest_id, arxiv_id)
            )
            """
        )
        conn.commit()

    def close_all(self) -> None:
        with self._lock:
            for conn in self._connections.values():
                conn.close()
            self._connections.clear()


class TagStore:
    """Tag associations written by the tagging UI."""

    def __init__(self, manager: SQLiteManager, db_path: Path) -> None:
        self.manager = manager
        self.db_path = db_path
        self._conn = self.manager.connect(db_path)

    def paper_ids(self, user_id: str, tag: str) -> set[str]:
        cur = self._conn.execute(
            "SELECT paper_id FROM paper_tags WHERE user_id = ? AND name = ?",
            (user_id, tag),
        )
        return {row["paper_id"] for row in cur.fetchall()}

    def add_tag(self, user_id: str, tag: str, paper_id: str) -> None:
        self._conn.execute(
            "INSERT OR IGNORE INTO paper_tags(user_id, name, paper_id) VALUES (?, ?, ?)",
            (user_id, tag, paper_id),
        )
        self._conn.commit()


class DigestStore:
    """Relevance judgments stored by the nightly digest job."""

    def __init__(self, manager: SQLiteManager, db_path: Path) -> None:
        self.manager = manager
        self.db_path = db_path
        self._conn = self.manager.connect(db_path)

    def results(self, digest_id: str) -> list[DigestResult]:
        cur = self._conn.execute(
            "SELECT arxiv_id, reason, relevancy_score FROM digest_results WHERE digest_id = ?",
            (digest_id,),
        )
        return [
            DigestResult(
                arxiv_id=row["arxiv_id"],
                reason=row["reason"] or "",
                relevancy_score=float(row["relevancy_score"] or 0.0),
            )
            for row in cur.fetchall()
        ]

    def add_result(self, digest_id: str, result: DigestResult) -> None:
        self._conn.execute(
            "INSERT OR REPLACE INTO digest_results(digest_id, arxiv_id, reason, relevancy_score) "
            "VALUES (?, ?, ?, ?)",
            (digest_id, result.arxiv_id, result.reason, result.relevancy_score),
        )
        self._conn.commit()


__all__ = ["DigestStore", "SQLiteManager", "TagStore"]
