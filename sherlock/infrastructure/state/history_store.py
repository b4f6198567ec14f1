"""
File-based login history storage

Records live in a single JSON file:
    {"next_id": 3, "records": [{"id": 1, "host": ..., ...}, ...]}
"""
import json
import os
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from ...core.constants import CONFIG_DIR_MODE, CONFIG_FILE_MODE, DEFAULT_SSH_PORT, HISTORY_PATH
from ...core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class HistoryRecord:
    """One remembered login target"""
    id: int
    host: str
    port: int = DEFAULT_SSH_PORT
    user: str = ""
    timestamp: str = ""
    has_pub_key: bool = False
    login_count: int = 1

    @property
    def host_key(self) -> str:
        """Identity string: user@host:port"""
        return f"{self.user}@{self.host}:{self.port}"

    @property
    def last_login(self) -> Optional[datetime]:
        try:
            return datetime.fromisoformat(self.timestamp)
        except ValueError:
            return None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoryRecord":
        return cls(
            id=int(data["id"]),
            host=str(data["host"]),
            port=int(data.get("port", DEFAULT_SSH_PORT)),
            user=str(data.get("user", "")),
            timestamp=str(data.get("timestamp", "")),
            has_pub_key=bool(data.get("has_pub_key", False)),
            login_count=int(data.get("login_count", 1)),
        )


class HistoryStore:
    """
    Login history keyed on (host, port, user).

    Every mutation rewrites the file atomically.
    """

    def __init__(self, path: Optional[Path] = None):
        """
        Args:
            path: History file (default: ~/.config/sherlock/history.json)
        """
        self.path = Path(path or HISTORY_PATH).expanduser()
        self._records: List[HistoryRecord] = []
        self._next_id = 1
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            records = [HistoryRecord.from_dict(r) for r in data.get("records", [])]
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning("Ignoring unreadable history file %s: %s", self.path, e)
            return

        self._records = records
        max_id = max((r.id for r in records), default=0)
        self._next_id = max(int(data.get("next_id", 1)), max_id + 1)

    def _save(self) -> None:
        self.path.parent.mkdir(mode=CONFIG_DIR_MODE, parents=True, exist_ok=True)
        payload = {
            "next_id": self._next_id,
            "records": [r.to_dict() for r in self._records],
        }

        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        fd = os.open(str(tmp_path), os.O_WRONLY | os.O_CREAT | os.O_TRUNC, CONFIG_FILE_MODE)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, self.path)

    def _find(self, host: str, port: int, user: str) -> Optional[HistoryRecord]:
        for record in self._records:
            if record.host == host and record.port == port and record.user == user:
                return record
        return None

    def add_record(self, host: str, port: int, user: str, has_pub_key: bool = False) -> HistoryRecord:
        """
        Record a successful login.

        A repeat login refreshes the timestamp and bumps login_count;
        has_pub_key never goes back to False once set.

        Raises:
            OSError: If the history file cannot be written
        """
        now = datetime.now().isoformat()
        record = self._find(host, port, user)

        if record is None:
            record = HistoryRecord(
                id=self._next_id,
                host=host,
                port=port,
                user=user,
                timestamp=now,
                has_pub_key=has_pub_key,
                login_count=1,
            )
            self._next_id += 1
            self._records.append(record)
        else:
            record.timestamp = now
            record.login_count += 1
            record.has_pub_key = record.has_pub_key or has_pub_key

        self._save()
        return record

    def get_records(self, limit: Optional[int] = None) -> List[HistoryRecord]:
        """All records, newest login first"""
        records = sorted(self._records, key=lambda r: (r.timestamp, r.id), reverse=True)
        if limit is not None:
            records = records[:limit]
        return records

    def search_records(self, query: str) -> List[HistoryRecord]:
        """Records whose host, user or host:port contains query (case-insensitive)"""
        needle = query.strip().lower()
        if not needle:
            return self.get_records()
        return [
            r for r in self.get_records()
            if needle in r.host.lower()
            or needle in r.user.lower()
            or needle in f"{r.host}:{r.port}".lower()
            or needle in r.host_key.lower()
        ]

    def get_record_by_id(self, record_id: int) -> Optional[HistoryRecord]:
        for record in self._records:
            if record.id == record_id:
                return record
        return None

    def delete_record(self, record_id: int) -> bool:
        """
        Remove a record.

        Returns:
            True if a record was removed
        """
        record = self.get_record_by_id(record_id)
        if record is None:
            return False
        self._records.remove(record)
        self._save()
        return True

    def __len__(self) -> int:
        return len(self._records)
