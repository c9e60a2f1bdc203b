"""TF-IDF index and cosine-similarity search over commands."""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass, field
from itertools import groupby
from typing import Any, Iterable

MIN_SIMILARITY = 0.01

_STOP_WORDS = frozenset(
    {
        "the", "a", "an", "and", "or", "but",
        "in", "on", "at", "to", "for", "of",
        "with", "by", "is", "are", "was", "were",
        "be", "been", "have", "has", "had", "do",
        "does", "did", "will", "would", "could", "should",
        "this", "that", "these", "those", "it", "its",
        "you", "your", "all", "any", "can", "from",
        "not", "no", "if", "when", "where", "how",
        "what", "which", "who", "why", "use", "used",
        "using",
    }
)


def _is_word_char(ch: str) -> bool:
    return ch.isalpha() or ch.isnumeric()


def tokenize(text: str) -> list[str]:
    """Split text into lowercase tokens, dropping short words and stop words."""
    tokens = []
    for is_word, chars in groupby(text.lower(), key=_is_word_char):
        if not is_word:
            continue
        word = "".join(chars)
        if len(word.encode("utf-8", "surrogatepass")) >= 2 and word not in _STOP_WORDS:
            tokens.append(word)
    return tokens


@dataclass
class IndexedCommand:
    """The searchable text of one command."""

    command: str
    description: str = ""
    keywords: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class TFIDFResult:
    """A search hit: the command's position, its scaled score and similarity."""

    command_index: int
    score: float
    similarity: float


class TFIDFSearcher:
    """Ranks commands against a query by TF-IDF cosine similarity."""

    def __init__(self, commands: Iterable[IndexedCommand]) -> None:
        self.commands = list(commands)
        self._idf: dict[str, float] = {}
        self._doc_vectors: list[dict[str, float]] = []
        self._doc_norms: list[float] = []
        self._build_index()

    def _build_index(self) -> None:
        documents = [
            tokenize(" ".join([cmd.command, cmd.description, " ".join(cmd.keywords)]))
            for cmd in self.commands
        ]
        total = len(self.commands)
        doc_counts = Counter(word for doc in documents for word in set(doc))

        # Keep words shared by at least two documents but no more than half of them.
        self._idf = {
            word: math.log(total / count)
            for word, count in doc_counts.items()
            if 2 <= count <= total // 2
        }

        for doc in documents:
            vector = self._weigh(doc)
            self._doc_vectors.append(vector)
            self._doc_norms.append(math.sqrt(sum(v * v for v in vector.values())))

    def _weigh(self, tokens: list[str]) -> dict[str, float]:
        counts = Counter(token for token in tokens if token in self._idf)
        return {
            word: count / len(tokens) * self._idf[word] for word, count in counts.items()
        }

    @staticmethod
    def _cosine(
        query: dict[str, float], query_norm: float, doc: dict[str, float], doc_norm: float
    ) -> float:
        if query_norm == 0 or doc_norm == 0:
            return 0.0
        dot = sum(weight * doc[word] for word, weight in query.items() if word in doc)
        return dot / (query_norm * doc_norm)

    def search(self, query: str, limit: int) -> list[TFIDFResult]:
        """Return up to ``limit`` matches, most similar first."""
        if limit < 0:
            raise ValueError("limit must not be negative")
        tokens = tokenize(query)
        if not tokens:
            return []
        query_vector = self._weigh(tokens)
        query_norm = math.sqrt(sum(v * v for v in query_vector.values()))
        if query_norm == 0:
            return []

        results = []
        for index, (vector, norm) in enumerate(zip(self._doc_vectors, self._doc_norms)):
            similarity = self._cosine(query_vector, query_norm, vector, norm)
            if similarity > MIN_SIMILARITY:
                results.append(TFIDFResult(index, similarity * 100, similarity))

        results.sort(key=lambda result: result.similarity, reverse=True)
        return results[:limit]

    def vocabulary_stats(self) -> dict[str, Any]:
        """Summarise the size of the index."""
        total_terms = sum(len(vector) for vector in self._doc_vectors)
        average = total_terms / len(self._doc_vectors) if self._doc_vectors else math.nan
        return {
            "vocabulary_size": len(self._idf),
            "total_commands": len(self.commands),
            "avg_terms_per_command": average,
        }