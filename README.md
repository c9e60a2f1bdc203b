# whatsfunc

These are building blocks for a "what's the command for that?" tool. The
package can:

- understand a natural-language query
- rank commands by TF-IDF similarity
- remember what was searched
- measure how fast things run

The package uses only the standard library and supports Python 3.10 and later.

## Install

```
pip install whatsfunc
```

To run the test suite:

```
pip install "whatsfunc[test]"
pytest
```

## Modules

### `whatsfunc.nlp`: query understanding

`QueryProcessor.process_query` does the following:

1. Cleans the query. Characters other than ASCII letters, digits, `_`, `-`, `.` and whitespace become spaces.
2. Drops stop words.
3. Sorts the remaining words into actions, targets and keywords. A keyword that has known synonyms also adds its first synonym.
4. Detects a `QueryIntent`: `FIND`, `CREATE`, `DELETE`, `MODIFY`, `VIEW`, `RUN`, `INSTALL`, `CONFIGURE` or `GENERAL`.

`ProcessedQuery.enhanced_keywords()` returns the keywords, then the actions,
then the targets, with duplicates removed. If that list has fewer than three
terms, some terms tied to the intent are added.

```python
from whatsfunc.nlp import QueryProcessor, QueryIntent

pq = QueryProcessor().process_query("remove old files")
assert pq.intent is QueryIntent.DELETE
print(pq.enhanced_keywords())
```

`clean_query`, `detect_intent` and `remove_duplicates` are also available as
plain functions. The word tables are exposed as `STOP_WORDS`, `SYNONYMS`,
`ACTION_WORDS` and `TARGET_WORDS`.

### `whatsfunc.tfidf`: similarity search

`TFIDFSearcher` builds a TF-IDF index over a list of `IndexedCommand`
entries. Each entry has a command, a description and keywords.

Indexing rules:

- `tokenize` lowercases the text and splits it on characters that are not letters or digits.
- Tokens shorter than two bytes are dropped, and so are stop words.
- A word enters the vocabulary only if it appears in at least two documents and in no more than half of them.

`search(query, limit)` returns up to `limit` `TFIDFResult` items. Each item
holds `command_index`, `similarity` and `score` (the similarity times 100).
Results are sorted by cosine similarity, and only those above 0.01 are kept.
A negative `limit` raises `ValueError`.

`vocabulary_stats()` reports:

- the vocabulary size
- the number of commands
- the average number of terms per command

```python
from whatsfunc.tfidf import IndexedCommand, TFIDFSearcher

searcher = TFIDFSearcher([
    IndexedCommand("tar -czf", "compress a directory into an archive", ["compress", "archive"]),
    IndexedCommand("unzip", "extract a zip archive", ["extract", "zip"]),
    # ...
])
for hit in searcher.search("compress folder", 5):
    print(hit.command_index, round(hit.similarity, 3))
```

### `whatsfunc.history`: search history

`SearchHistory` keeps past queries in a JSON file. `default_history_path()`
gives the usual location: `wtf/search_history.json` under the user's
configuration directory. If that directory cannot be found, it falls back to
`~/.wtf/search_history.json`.

- `add_entry(query, results_count, context, duration)` records a search.
  `duration` is a `timedelta` or a number of seconds, and is stored as
  milliseconds.
- Repeating the most recent query replaces that entry instead of adding a new one.
- The history is trimmed to `max_size` entries. The default is 100.
- `get_recent_queries`, `get_top_queries` and `get_entries_by_pattern` report
  on past searches. `get_stats` returns a `HistoryStats`.
- `load()` ignores a missing or empty file and raises `ValueError` on
  malformed JSON. `save()` creates parent directories as needed. `clear()`
  empties the history and saves it.

```python
from whatsfunc.history import SearchHistory, default_history_path

history = SearchHistory(default_history_path(), 100)
history.load()
history.add_entry("git commit", 5, "", 0.05)
history.save()
print(history.get_top_queries(3))
```

### `whatsfunc.metrics`: counters, gauges, histograms, timers

The metric types are thread-safe:

- `Counter`
- `Gauge`, which keeps three decimal places
- `Histogram`, which counts values into fixed buckets and reports bucket-based percentiles
- `Timer`

`Timer.time()` starts timing and returns a function. Calling that function
records the elapsed milliseconds and returns them. `Timer.time_func(fn)`
times a call and returns the call's result.

A `MetricsCollector` hands out one shared instance per name and tag set.
`get_all_metrics()` returns a snapshot of all of them as `Metric` objects.
`get_system_metrics()` reports these process figures:

- memory in use
- peak memory
- memory held from the OS
- garbage-collector runs
- active threads
- uptime

The module-level helpers use a process-wide collector: `default_counter`,
`default_gauge`, `default_histogram`, `default_timer`, `get_all_metrics`,
`get_system_metrics` and `reset_metrics`.

```python
from whatsfunc.metrics import MetricsCollector

collector = MetricsCollector()
collector.counter("requests_total", {"method": "GET"}).inc()

stop = collector.timer("request").time()
...  # the work being measured
elapsed_ms = stop()
```

### `whatsfunc.performance`: monitoring and benchmarking

`PerformanceMonitor` records into its own collector:

- search operations
- database operations
- memory usage

Recording can be switched off with `enable(False)`.
`start_memory_monitoring(stop_event, interval)` records memory usage every
`interval` until the `threading.Event` is set.

`get_performance_report()` returns a `PerformanceReport` with these derived
figures:

- average search time
- cache-hit ratio
- searches per second
- memory use in MB
- thread count

The module-level functions `record_search_operation`,
`record_database_operation`, `record_memory_usage`, `get_performance_report`
and `enable_performance_monitoring` use a process-wide monitor.

`Benchmarker` has two methods. `benchmark_function(name, fn, iterations)`
times repeated calls. `profile_memory(name, fn)` measures the memory that
one call allocates, using `tracemalloc`.

## What the package does not do

There is no command-line program and no bundled database of commands. To
search, you supply your own list of `IndexedCommand` entries to
`TFIDFSearcher`. Results are not printed or formatted for a terminal.