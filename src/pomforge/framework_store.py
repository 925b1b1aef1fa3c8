from __future__ import annotations

from datetime import datetime, timezone
import json
import logging
import os
from pathlib import Path
import sqlite3
import threading
from typing import Any, Callable, Sequence
import uuid

from .models import AutomationProject, SavedFramework

DEFAULT_FRAMEWORK_NAME = "Unnamed Framework"

logger = logging.getLogger("pomforge.store")


def default_store_dir() -> Path:
    configured = os.environ.get("POMFORGE_HOME", "").strip()
    if configured:
        return Path(configured).expanduser()
    return Path.home() / ".pomforge"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class FrameworkStore:
    def __init__(
        self,
        base_dir: Path | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        root = base_dir or default_store_dir()
        root.mkdir(parents=True, exist_ok=True)
        self.db_path = root / "frameworks.db"
        self.json_path = root / "frameworks.json"
        self._clock = clock or _utc_now
        self._lock = threading.Lock()
        self._use_sqlite = self._initialize_sqlite()
        if not self._use_sqlite:
            logger.warning("sqlite unavailable at %s, using %s", self.db_path, self.json_path)
            self._initialize_json()

    @property
    def uses_sqlite(self) -> bool:
        return self._use_sqlite

    def _initialize_sqlite(self) -> bool:
        try:
            with sqlite3.connect(self.db_path) as conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS frameworks (
                        id TEXT PRIMARY KEY,
                        name TEXT NOT NULL,
                        version INTEGER NOT NULL,
                        created_at TEXT NOT NULL,
                        updated_at TEXT NOT NULL,
                        project TEXT NOT NULL,
                        last_urls TEXT NOT NULL
                    )
                    """
                )
                conn.commit()
            return True
        except sqlite3.Error:
            return False

    def _initialize_json(self) -> None:
        if self.json_path.exists():
            return
        self._write_json({"frameworks": []})

    def _fall_back_to_json(self, exc: sqlite3.Error) -> None:
        logger.warning("sqlite error, switching to JSON store: %s", exc)
        self._use_sqlite = False
        self._initialize_json()

    def create(
        self,
        name: str,
        project: AutomationProject,
        last_urls: Sequence[str] = (),
    ) -> SavedFramework:
        timestamp = self._timestamp()
        framework = SavedFramework(
            id=str(uuid.uuid4()),
            name=name.strip() or DEFAULT_FRAMEWORK_NAME,
            version=1,
            created_at=timestamp,
            updated_at=timestamp,
            project=project,
            last_urls=list(last_urls),
        )
        with self._lock:
            self._put(framework)
        logger.info("Saved framework %s (%s)", framework.name, framework.id)
        return framework

    def get(self, framework_id: str) -> SavedFramework | None:
        with self._lock:
            return self._get(framework_id)

    def list_all(self) -> list[SavedFramework]:
        with self._lock:
            if self._use_sqlite:
                try:
                    with sqlite3.connect(self.db_path) as conn:
                        rows = conn.execute(
                            """
                            SELECT id, name, version, created_at, updated_at, project, last_urls
                            FROM frameworks
                            """
                        ).fetchall()
                    frameworks = [_framework_from_row(row) for row in rows]
                    return sorted(frameworks, key=lambda item: item.updated_at, reverse=True)
                except sqlite3.Error as exc:
                    self._fall_back_to_json(exc)

            frameworks = [_framework_from_record(record) for record in self._read_json()["frameworks"]]
            return sorted(frameworks, key=lambda item: item.updated_at, reverse=True)

    def update(
        self,
        framework_id: str,
        project: AutomationProject,
        name: str | None = None,
        last_urls: Sequence[str] | None = None,
    ) -> SavedFramework | None:
        with self._lock:
            existing = self._get(framework_id)
            if existing is None:
                return None
            updated = SavedFramework(
                id=existing.id,
                name=(name.strip() if name and name.strip() else existing.name),
                version=existing.version + 1,
                created_at=existing.created_at,
                updated_at=self._timestamp(),
                project=project,
                last_urls=list(last_urls) if last_urls is not None else list(existing.last_urls),
            )
            self._put(updated)
        logger.info("Updated framework %s to version %d", updated.id, updated.version)
        return updated

    def delete(self, framework_id: str) -> bool:
        with self._lock:
            if self._use_sqlite:
                try:
                    with sqlite3.connect(self.db_path) as conn:
                        cur = conn.execute("DELETE FROM frameworks WHERE id = ?", (framework_id,))
                        conn.commit()
                        deleted = cur.rowcount > 0
                    if deleted:
                        logger.info("Deleted framework %s", framework_id)
                    return deleted
                except sqlite3.Error as exc:
                    self._fall_back_to_json(exc)

            payload = self._read_json()
            remaining = [record for record in payload["frameworks"] if record.get("id") != framework_id]
            if len(remaining) == len(payload["frameworks"]):
                return False
            payload["frameworks"] = remaining
            self._write_json(payload)
            logger.info("Deleted framework %s", framework_id)
            return True

    def _get(self, framework_id: str) -> SavedFramework | None:
        # Caller holds the lock.
        if self._use_sqlite:
            try:
                with sqlite3.connect(self.db_path) as conn:
                    row = conn.execute(
                        """
                        SELECT id, name, version, created_at, updated_at, project, last_urls
                        FROM frameworks WHERE id = ?
                        """,
                        (framework_id,),
                    ).fetchone()
                return _framework_from_row(row) if row else None
            except sqlite3.Error as exc:
                self._fall_back_to_json(exc)

        for record in self._read_json()["frameworks"]:
            if record.get("id") == framework_id:
                return _framework_from_record(record)
        return None

    def _put(self, framework: SavedFramework) -> None:
        # Caller holds the lock.
        if self._use_sqlite:
            try:
                with sqlite3.connect(self.db_path) as conn:
                    conn.execute(
                        """
                        INSERT INTO frameworks (
                            id,
                            name,
                            version,
                            created_at,
                            updated_at,
                            project,
                            last_urls
                        ) VALUES (?, ?, ?, ?, ?, ?, ?)
                        ON CONFLICT(id) DO UPDATE SET
                            name = excluded.name,
                            version = excluded.version,
                            updated_at = excluded.updated_at,
                            project = excluded.project,
                            last_urls = excluded.last_urls
                        """,
                        (
                            framework.id,
                            framework.name,
                            framework.version,
                            framework.created_at,
                            framework.updated_at,
                            json.dumps(framework.project.to_dict()),
                            json.dumps(framework.last_urls),
                        ),
                    )
                    conn.commit()
                return
            except sqlite3.Error as exc:
                self._fall_back_to_json(exc)

        payload = self._read_json()
        records = [record for record in payload["frameworks"] if record.get("id") != framework.id]
        records.append(framework.to_dict())
        payload["frameworks"] = records
        self._write_json(payload)

    def _timestamp(self) -> str:
        return self._clock().astimezone(timezone.utc).isoformat()

    def _read_json(self) -> dict[str, Any]:
        if not self.json_path.exists():
            return {"frameworks": []}
        payload = json.loads(self.json_path.read_text(encoding="utf-8"))
        payload.setdefault("frameworks", [])
        return payload

    def _write_json(self, payload: dict[str, Any]) -> None:
        self.json_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")


def _framework_from_row(row: Sequence[Any]) -> SavedFramework:
    framework_id, name, version, created_at, updated_at, project, last_urls = row
    return SavedFramework(
        id=framework_id,
        name=name,
        version=int(version),
        created_at=created_at,
        updated_at=updated_at,
        project=AutomationProject.from_dict(json.loads(project)),
        last_urls=list(json.loads(last_urls)),
    )


def _framework_from_record(record: dict[str, Any]) -> SavedFramework:
    metadata = record.get("metadata") or {}
    return SavedFramework(
        id=str(record.get("id", "")),
        name=str(record.get("name") or DEFAULT_FRAMEWORK_NAME),
        version=int(record.get("version", 1)),
        created_at=str(record.get("createdAt", "")),
        updated_at=str(record.get("updatedAt", "")),
        project=AutomationProject.from_dict(record.get("project") or {}),
        last_urls=[str(url) for url in metadata.get("lastUrls", [])],
    )
