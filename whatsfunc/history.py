"""Persistent search history with simple usage analytics."""

from __future__ import annotations

import json
import os
import re
import sys
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

DEFAULT_MAX_SIZE = 100
DEFAULT_LIMIT = 10

_APP_DIR = "wtf"
_FILE_NAME = "search_history.json"
_ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)

_TIME_RE = re.compile(
    r"^(?P<base>\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<frac>\d+))?"
    r"(?P<tz>Z|[+-]\d{2}:\d{2})?$"
)


def _parse_time(text: str) -> datetime:
    """Parse an RFC 3339 timestamp, accepting up to nanosecond precision."""
    match = _TIME_RE.match(text.strip())
    if match is None:
        raise ValueError(f"invalid timestamp: {text!r}")
    frac = (match["frac"] or "")[:6].ljust(6, "0")
    tz = match["tz"] or ""
    if tz == "Z":
        tz = "+00:00"
    return datetime.fromisoformat(f"{match['base']}.{frac}{tz}")


def _now() -> datetime:
    return datetime.now().astimezone()


def _to_milliseconds(duration: timedelta | float) -> int:
    if not isinstance(duration, timedelta):
        duration = timedelta(seconds=duration)
    return int(duration / timedelta(milliseconds=1))


def _user_config_dir() -> Path:
    """Return the per-user configuration directory, or raise OSError."""
    if sys.platform.startswith("win"):
        appdata = os.environ.get("APPDATA")
        if not appdata:
            raise OSError("%APPDATA% is not defined")
        return Path(appdata)
    if sys.platform == "darwin":
        home = os.environ.get("HOME")
        if not home:
            raise OSError("$HOME is not defined")
        return Path(home) / "Library" / "Application Support"
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        path = Path(xdg)
        if not path.is_absolute():
            raise OSError("path in $XDG_CONFIG_HOME is relative")
        return path
    home = os.environ.get("HOME")
    if not home:
        raise OSError("neither $XDG_CONFIG_HOME nor $HOME are defined")
    return Path(home) / ".config"


def default_history_path() -> str:
    """Return the default location of the search history file."""
    try:
        return str(_user_config_dir() / _APP_DIR / _FILE_NAME)
    except OSError:
        return str(Path.home().absolute() / f".{_APP_DIR}" / _FILE_NAME)


@dataclass
class SearchEntry:
    """A single recorded search."""

    query: str
    timestamp: datetime
    results_count: int
    context: str = ""
    duration: int = 0  # milliseconds

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "query": self.query,
            "timestamp": self.timestamp.isoformat(),
            "results_count": self.results_count,
        }
        if self.context:
            data["context"] = self.context
        if self.duration:
            data["duration"] = self.duration
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SearchEntry:
        if not isinstance(data, dict):
            raise ValueError("history entry must be a JSON object")
        raw_time = data.get("timestamp")
        return cls(
            query=str(data.get("query") or ""),
            timestamp=_parse_time(raw_time) if raw_time else _ZERO_TIME,
            results_count=int(data.get("results_count") or 0),
            context=str(data.get("context") or ""),
            duration=int(data.get("duration") or 0),
        )


@dataclass(frozen=True)
class QueryFrequency:
    """A query together with how often and how recently it was used."""

    query: str
    count: int
    last_used: datetime


@dataclass(frozen=True)
class HistoryStats:
    """Aggregate statistics over the search history."""

    total_searches: int = 0
    unique_queries: int = 0
    avg_results_per_search: float = 0.0
    avg_search_duration: float = 0.0
    oldest_entry: datetime | None = None
    newest_entry: datetime | None = None


@dataclass
class SearchHistory:
    """A bounded list of searches stored as JSON at ``file_path``."""

    file_path: str
    max_size: int = DEFAULT_MAX_SIZE
    entries: list[SearchEntry] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.max_size <= 0:
            self.max_size = DEFAULT_MAX_SIZE

    def to_dict(self) -> dict[str, Any]:
        return {
            "entries": [entry.to_dict() for entry in self.entries],
            "max_size": self.max_size,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], file_path: str = "") -> SearchHistory:
        history = cls(file_path)
        history._update_from(data)
        return history

    def _update_from(self, data: Any) -> None:
        if not isinstance(data, dict):
            raise ValueError("history data must be a JSON object")
        if "entries" in data:
            raw_entries = data["entries"] or []
            if not isinstance(raw_entries, list):
                raise ValueError("history entries must be a JSON array")
            self.entries = [SearchEntry.from_dict(item) for item in raw_entries]
        if data.get("max_size") is not None:
            self.max_size = int(data["max_size"])

    def load(self) -> None:
        """Load entries from the history file; a missing or empty file is ignored."""
        path = Path(self.file_path)
        if not path.exists():
            return
        raw = path.read_bytes()
        if not raw:
            return
        try:
            data = json.loads(raw)
            self._update_from(data)
        except ValueError as exc:
            raise ValueError(f"failed to parse history file: {exc}") from exc

    def save(self) -> None:
        """Write the history to its file, creating directories as needed."""
        path = Path(self.file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(self.to_dict(), indent=2, ensure_ascii=False),
            encoding="utf-8",
        )

    def add_entry(
        self,
        query: str,
        results_count: int,
        context: str = "",
        duration: timedelta | float = 0.0,
    ) -> None:
        """Record a search; ``duration`` is a timedelta or seconds."""
        entry = SearchEntry(
            query=query,
            timestamp=_now(),
            results_count=results_count,
            context=context,
            duration=_to_milliseconds(duration),
        )
        if self.entries and self.entries[-1].query == query:
            self.entries[-1] = entry
            return
        self.entries.append(entry)
        if len(self.entries) > self.max_size:
            self.entries = self.entries[-self.max_size:]

    def get_recent_queries(self, limit: int = DEFAULT_LIMIT) -> list[str]:
        """Return distinct queries, most recent first."""
        if limit <= 0:
            limit = DEFAULT_LIMIT
        queries: list[str] = []
        seen: set[str] = set()
        for entry in reversed(self.entries):
            if len(queries) >= limit:
                break
            if entry.query not in seen:
                seen.add(entry.query)
                queries.append(entry.query)
        return queries

    def get_entries_by_pattern(self, pattern: str) -> list[SearchEntry]:
        """Return entries whose query contains ``pattern``, newest first."""
        needle = pattern.lower()
        matches = [entry for entry in reversed(self.entries) if needle in entry.query.lower()]
        return sorted(matches, key=lambda entry: entry.timestamp, reverse=True)

    def get_top_queries(self, limit: int = DEFAULT_LIMIT) -> list[QueryFrequency]:
        """Return the most frequent queries, ties broken by recency."""
        if limit <= 0:
            limit = DEFAULT_LIMIT
        frequency = Counter(entry.query for entry in self.entries)
        last_seen: dict[str, datetime] = {}
        for entry in self.entries:
            if entry.timestamp > last_seen.get(entry.query, _ZERO_TIME):
                last_seen[entry.query] = entry.timestamp
        ranked = sorted(
            (
                QueryFrequency(query, count, last_seen.get(query, _ZERO_TIME))
                for query, count in frequency.items()
            ),
            key=lambda qf: (qf.count, qf.last_used),
            reverse=True,
        )
        return ranked[:limit]

    def get_stats(self) -> HistoryStats:
        if not self.entries:
            return HistoryStats()
        total = len(self.entries)
        total_results = sum(entry.results_count for entry in self.entries)
        total_duration = sum(entry.duration for entry in self.entries)
        return HistoryStats(
            total_searches=total,
            unique_queries=len({entry.query for entry in self.entries}),
            avg_results_per_search=total_results / total,
            avg_search_duration=total_duration / total if total_duration > 0 else 0.0,
            oldest_entry=self.entries[0].timestamp,
            newest_entry=self.entries[-1].timestamp,
        )

    def clear(self) -> None:
        """Remove all entries and persist the empty history."""
        self.entries = []
        self.save()