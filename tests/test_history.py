import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from whatsfunc.history import (
    HistoryStats,
    SearchEntry,
    SearchHistory,
    default_history_path,
)

BASE = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def _add_all(history, queries):
    for offset, query in enumerate(queries):
        history.add_entry(query, 1, "", timedelta(milliseconds=1))
        history.entries[-1].timestamp = BASE + timedelta(seconds=offset)


def test_new_search_history():
    history = SearchHistory("/tmp/test_history.json", 50)
    assert history.file_path == "/tmp/test_history.json"
    assert history.max_size == 50
    assert history.entries == []


@pytest.mark.parametrize("size", [0, -5])
def test_new_search_history_non_positive_max_size(size):
    assert SearchHistory("/tmp/test.json", size).max_size == 100


def test_default_history_path():
    path = Path(default_history_path())
    assert path.is_absolute()
    assert path.name == "search_history.json"
    assert path.parent.name in ("wtf", ".wtf")


def test_add_entry():
    history = SearchHistory("/tmp/test.json", 10)
    history.add_entry("git commit", 5, "project1", timedelta(milliseconds=50))
    assert len(history.entries) == 1
    entry = history.entries[0]
    assert entry.query == "git commit"
    assert entry.results_count == 5
    assert entry.context == "project1"
    assert entry.duration == 50
    assert datetime.now(timezone.utc) - entry.timestamp < timedelta(seconds=1)


def test_add_entry_with_seconds():
    history = SearchHistory("/tmp/test.json", 10)
    history.add_entry("q", 1, "", 0.05)
    assert history.entries[0].duration == 50


def test_add_entry_duplicate():
    history = SearchHistory("/tmp/test.json", 10)
    history.add_entry("git commit", 3, "ctx1", timedelta(milliseconds=30))
    history.add_entry("git commit", 5, "ctx2", timedelta(milliseconds=50))
    assert len(history.entries) == 1
    assert history.entries[0].results_count == 5
    assert history.entries[0].context == "ctx2"


def test_add_entry_max_size():
    history = SearchHistory("/tmp/test.json", 3)
    for i in range(5):
        history.add_entry(f"query{i}", i, "", timedelta(milliseconds=i))
    assert [e.query for e in history.entries] == ["query2", "query3", "query4"]


def test_get_recent_queries():
    history = SearchHistory("/tmp/test.json", 10)
    _add_all(history, ["git commit", "find files", "git push", "find files", "tar compress"])
    assert history.get_recent_queries(3) == ["tar compress", "find files", "git push"]


def test_get_recent_queries_with_limit():
    history = SearchHistory("/tmp/test.json", 10)
    for i in range(5):
        history.add_entry(f"query{i}", 1, "", timedelta(milliseconds=1))
    assert len(history.get_recent_queries(0)) == 5
    assert history.get_recent_queries(2) == ["query4", "query3"]


def test_get_entries_by_pattern():
    history = SearchHistory("/tmp/test.json", 10)
    _add_all(history, ["git commit", "git push", "find files", "grep pattern", "git log"])
    matches = history.get_entries_by_pattern("git")
    assert [e.query for e in matches] == ["git log", "git push", "git commit"]


def test_get_entries_by_pattern_is_case_insensitive():
    history = SearchHistory("/tmp/test.json", 10)
    history.add_entry("git commit", 1, "", 0)
    history.add_entry("git push", 1, "", 0)
    history.add_entry("git log", 1, "", 0)
    matches = history.get_entries_by_pattern("GIT")
    assert [e.query for e in matches] == ["git log", "git push", "git commit"]


def test_get_top_queries():
    history = SearchHistory("/tmp/test.json", 10)
    _add_all(
        history,
        ["git commit", "find files", "git commit", "git push", "git commit", "find files"],
    )
    top = history.get_top_queries(3)
    assert [(qf.query, qf.count) for qf in top] == [
        ("git commit", 3),
        ("find files", 2),
        ("git push", 1),
    ]
    assert top[0].last_used == BASE + timedelta(seconds=4)


def test_get_top_queries_ties_broken_by_recency():
    history = SearchHistory("/tmp/test.json", 10)
    _add_all(history, ["a", "b"])
    assert [qf.query for qf in history.get_top_queries(0)] == ["b", "a"]


def test_get_stats_empty():
    stats = SearchHistory("/tmp/test.json", 10).get_stats()
    assert stats == HistoryStats()
    assert stats.total_searches == 0
    assert stats.oldest_entry is None


def test_get_stats():
    history = SearchHistory("/tmp/test.json", 10)
    for i, query in enumerate(["git commit", "find files", "git commit"]):
        history.add_entry(query, i + 1, "", timedelta(milliseconds=(i + 1) * 10))
    stats = history.get_stats()
    assert stats.total_searches == 3
    assert stats.unique_queries == 2
    assert stats.avg_results_per_search == pytest.approx(2.0)
    assert stats.avg_search_duration == pytest.approx(20.0)
    assert stats.newest_entry >= stats.oldest_entry


def test_save_and_load(tmp_path):
    file_path = tmp_path / "sub" / "test_history.json"
    history = SearchHistory(str(file_path), 10)
    history.add_entry("git commit", 5, "project1", timedelta(milliseconds=50))
    history.add_entry("find files", 3, "project2", timedelta(milliseconds=30))
    history.save()
    assert file_path.exists()

    loaded = SearchHistory(str(file_path), 10)
    loaded.load()
    assert len(loaded.entries) == 2
    assert loaded.max_size == 10
    assert loaded.entries[0].query == "git commit"
    assert loaded.entries[0].results_count == 5
    assert loaded.entries == history.entries


def test_saved_file_layout(tmp_path):
    file_path = tmp_path / "h.json"
    history = SearchHistory(str(file_path), 7)
    history.add_entry("ls", 2, "", 0)
    history.save()
    data = json.loads(file_path.read_text(encoding="utf-8"))
    assert data["max_size"] == 7
    assert data["entries"][0]["query"] == "ls"
    assert "context" not in data["entries"][0]
    assert "duration" not in data["entries"][0]


def test_load_nonexistent_file():
    history = SearchHistory("/nonexistent/path/history.json", 10)
    history.load()
    assert history.entries == []


def test_load_empty_file(tmp_path):
    file_path = tmp_path / "empty_history.json"
    file_path.touch()
    history = SearchHistory(str(file_path), 10)
    history.load()
    assert history.entries == []


def test_load_invalid_json(tmp_path):
    file_path = tmp_path / "invalid_history.json"
    file_path.write_text("invalid json content")
    with pytest.raises(ValueError):
        SearchHistory(str(file_path), 10).load()


def test_load_non_object_json(tmp_path):
    file_path = tmp_path / "list.json"
    file_path.write_text("[1, 2]")
    with pytest.raises(ValueError):
        SearchHistory(str(file_path), 10).load()


def test_clear(tmp_path):
    file_path = tmp_path / "clear_test.json"
    history = SearchHistory(str(file_path), 10)
    history.add_entry("test query", 1, "", timedelta(milliseconds=1))
    assert len(history.entries) == 1
    history.clear()
    assert history.entries == []
    reloaded = SearchHistory(str(file_path), 10)
    reloaded.load()
    assert reloaded.entries == []


def test_json_serialization():
    history = SearchHistory("/tmp/test.json", 5)
    history.add_entry("test query", 3, "context", timedelta(milliseconds=100))
    data = json.loads(json.dumps(history.to_dict(), indent=2))
    assert "file_path" not in data
    restored = SearchHistory.from_dict(data)
    assert len(restored.entries) == 1
    assert restored.max_size == 5
    assert restored.file_path == ""
    assert restored.entries[0] == history.entries[0]


def test_entry_from_dict_with_nanoseconds():
    entry = SearchEntry.from_dict(
        {"query": "q", "timestamp": "2024-05-01T10:20:30.123456789Z", "results_count": 2}
    )
    assert entry.timestamp == datetime(2024, 5, 1, 10, 20, 30, 123456, tzinfo=timezone.utc)
    assert entry.context == ""
    assert entry.duration == 0


def test_entry_from_dict_invalid_timestamp():
    with pytest.raises(ValueError):
        SearchEntry.from_dict({"query": "q", "timestamp": "yesterday"})