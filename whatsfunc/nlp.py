"""Natural-language query analysis: cleaning, word classes and intent detection."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Mapping

# Anything other than ASCII word characters, ASCII whitespace, hyphens and dots.
_UNWANTED_CHARS = re.compile(r"[^0-9A-Za-z_\t\n\f\r \-.]")
_WHITESPACE_RUN = re.compile(r"[\t\n\f\r ]+")

_VIEW_CONTEXT_WORDS = ("see", "view", "show", "display", "read", "look")
_WITHOUT_OPENING_PHRASES = ("without opening", "without editing")
_MIN_KEYWORDS_BEFORE_INTENT_HINTS = 3


class QueryIntent(str, Enum):
    """The kind of task a query asks for."""

    FIND = "find"
    CREATE = "create"
    DELETE = "delete"
    MODIFY = "modify"
    VIEW = "view"
    RUN = "run"
    INSTALL = "install"
    CONFIGURE = "configure"
    GENERAL = "general"


STOP_WORDS: frozenset[str] = frozenset(
    {
        "a", "an", "and", "are", "as", "at", "be", "by", "for", "from",
        "has", "he", "in", "is", "it", "its", "of", "on", "that", "the",
        "to", "was", "will", "with", "this", "but", "they", "have",
        "had", "what", "said", "each", "which", "she", "how", "their",
        "if", "up", "out", "many", "then", "them", "these", "so", "some", "her",
        "would", "like", "into", "him", "time", "two", "go", "no",
        "way", "could", "my", "than", "first", "been", "call", "who", "oil", "sit",
        "now", "down", "day", "did", "get", "come", "made", "may", "part",
    }
)

SYNONYMS: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        # File operations
        "file": ("document", "data", "content"),
        "files": ("documents", "data", "content"),
        "folder": ("directory", "dir", "path"),
        "folders": ("directories", "dirs", "paths"),
        "contents": ("content", "data", "text", "inside"),
        "content": ("contents", "data", "text", "inside"),
        # Viewing and reading
        "see": ("view", "show", "display", "read", "cat", "less", "more"),
        "view": ("see", "show", "display", "read", "cat", "less", "more"),
        "show": ("view", "see", "display", "read", "cat", "less"),
        "display": ("view", "see", "show", "read", "cat", "less"),
        "read": ("view", "see", "show", "display", "cat", "less"),
        "look": ("view", "see", "show", "display", "cat"),
        "check": ("view", "see", "show", "display", "cat"),
        "print": ("cat", "echo", "printf", "show"),
        # Actions
        "find": ("search", "locate", "discover", "lookup"),
        "create": ("make", "build", "generate", "new"),
        "delete": ("remove", "destroy", "erase", "clean"),
        "copy": ("duplicate", "clone", "backup"),
        "move": ("relocate", "transfer", "shift"),
        # Compression
        "compress": ("zip", "archive", "pack", "bundle", "tar"),
        "extract": ("unzip", "unpack", "decompress", "expand"),
        # Network
        "download": ("fetch", "get", "pull", "retrieve"),
        "upload": ("push", "send", "transfer", "post"),
        # System
        "process": ("task", "job", "service", "daemon"),
        "processes": ("tasks", "jobs", "services"),
        "running": ("active", "executing", "live"),
        "kill": ("stop", "terminate", "end"),
        "start": ("run", "launch", "execute", "begin"),
        # Permissions
        "permission": ("permissions", "access", "rights", "chmod"),
        "permissions": ("permission", "access", "rights", "chmod"),
        "change": ("modify", "alter", "update", "edit"),
        # Development
        "compile": ("build", "make", "assemble"),
        "deploy": ("release", "publish", "ship"),
        "test": ("check", "verify", "validate"),
    }
)

ACTION_WORDS: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        # Finding
        "find": ("find", "search", "locate"),
        "search": ("find", "search", "locate"),
        "locate": ("find", "search", "locate"),
        "list": ("list", "show", "display"),
        # Viewing
        "show": ("show", "display", "view"),
        "display": ("show", "display", "view"),
        "view": ("view", "show", "display"),
        "see": ("view", "show", "display"),
        "read": ("view", "show", "display"),
        "look": ("view", "show", "display"),
        "check": ("view", "show", "display"),
        # Creating
        "create": ("create", "make", "build"),
        "make": ("create", "make", "build"),
        "build": ("build", "create", "make"),
        "generate": ("create", "make", "build"),
        "new": ("create", "make", "build"),
        # Modifying
        "edit": ("edit", "modify", "change"),
        "modify": ("edit", "modify", "change"),
        "change": ("edit", "modify", "change"),
        "update": ("update", "modify", "change"),
        # Removing
        "delete": ("delete", "remove", "destroy"),
        "remove": ("delete", "remove", "destroy"),
        "destroy": ("delete", "remove", "destroy"),
        "clean": ("clean", "delete", "remove"),
        # Running
        "run": ("run", "execute", "start"),
        "execute": ("run", "execute", "start"),
        "start": ("start", "run", "execute"),
        "launch": ("start", "run", "execute"),
        # Installing
        "install": ("install", "setup", "add"),
        "setup": ("setup", "install", "configure"),
        "add": ("add", "install", "setup"),
        # Compression
        "compress": ("compress", "archive", "zip", "tar"),
        "extract": ("extract", "unzip", "unpack", "tar"),
        "archive": ("archive", "compress", "zip", "tar"),
        "pack": ("compress", "archive", "zip", "tar"),
        "unpack": ("extract", "unzip", "unpack", "tar"),
        # File operations
        "copy": ("copy", "cp", "duplicate"),
        "move": ("move", "mv", "relocate"),
        "rename": ("rename", "mv", "move"),
        # Process operations
        "kill": ("kill", "stop", "terminate"),
        "stop": ("stop", "kill", "terminate"),
        "terminate": ("terminate", "kill", "stop"),
    }
)

TARGET_WORDS: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        # File system
        "file": ("file", "document"),
        "files": ("files", "documents"),
        "folder": ("directory", "folder"),
        "directory": ("directory", "folder"),
        "directories": ("directories", "folders"),
        "path": ("path", "location"),
        "contents": ("contents", "content", "data"),
        "content": ("content", "contents", "data"),
        # Archives
        "archive": ("archive", "zip", "tar"),
        "archives": ("archives", "zip", "tar"),
        "zip": ("zip", "archive"),
        "tar": ("tar", "archive"),
        # Processes
        "process": ("process", "task"),
        "processes": ("processes", "tasks"),
        "service": ("service", "daemon"),
        "services": ("services", "daemons"),
        "daemon": ("daemon", "service"),
        "task": ("task", "process"),
        "tasks": ("tasks", "processes"),
        # Network
        "server": ("server", "host"),
        "port": ("port", "socket"),
        "connection": ("connection", "link"),
        "url": ("url", "link", "address"),
        "website": ("website", "url", "site"),
        # Development
        "project": ("project", "repo", "repository"),
        "repository": ("repository", "repo"),
        "repo": ("repo", "repository"),
        "branch": ("branch", "ref"),
        "commit": ("commit", "revision"),
        "code": ("code", "source", "program"),
        # System
        "permission": ("permission", "permissions", "access"),
        "permissions": ("permissions", "permission", "access"),
        "user": ("user", "account"),
        "group": ("group", "users"),
    }
)

_ACTION_INTENTS: Mapping[str, QueryIntent] = MappingProxyType(
    {
        **dict.fromkeys(("find", "search", "locate", "list"), QueryIntent.FIND),
        **dict.fromkeys(("show", "display", "view", "see", "read", "cat"), QueryIntent.VIEW),
        **dict.fromkeys(("create", "make", "build", "generate", "new"), QueryIntent.CREATE),
        **dict.fromkeys(("delete", "remove", "destroy", "clean", "clear"), QueryIntent.DELETE),
        **dict.fromkeys(("modify", "change", "edit", "update", "alter"), QueryIntent.MODIFY),
        **dict.fromkeys(("install", "add", "download"), QueryIntent.INSTALL),
        **dict.fromkeys(("run", "execute", "start", "launch"), QueryIntent.RUN),
        **dict.fromkeys(("configure", "config", "setup", "set"), QueryIntent.CONFIGURE),
    }
)

_KEYWORD_INTENTS: Mapping[str, QueryIntent] = MappingProxyType(
    {
        **dict.fromkeys(("install", "installation"), QueryIntent.INSTALL),
        **dict.fromkeys(("config", "configuration", "setup"), QueryIntent.CONFIGURE),
        **dict.fromkeys(("running", "execution", "processes"), QueryIntent.FIND),
        **dict.fromkeys(("permissions", "permission", "chmod"), QueryIntent.MODIFY),
    }
)

_CONTENT_KEYWORDS = frozenset({"contents", "content", "inside", "text"})
_VIEW_ACTIONS = frozenset({"view", "show", "see", "read", "display"})
_CLEAR_ACTIONS = frozenset({"clear", "empty", "delete", "remove"})

_INTENT_HINTS: Mapping[QueryIntent, tuple[str, ...]] = MappingProxyType(
    {
        QueryIntent.FIND: ("search", "find", "list"),
        QueryIntent.VIEW: ("cat", "view", "show", "display"),
        QueryIntent.CREATE: ("create", "make", "new"),
        QueryIntent.DELETE: ("delete", "remove"),
        QueryIntent.INSTALL: ("install", "setup"),
        QueryIntent.MODIFY: ("chmod", "change", "modify"),
    }
)


def remove_duplicates(items: Iterable[str]) -> list[str]:
    """Return the items without repeats, keeping first occurrences in order."""
    return list(dict.fromkeys(items))


def clean_query(query: str) -> str:
    """Replace unusual characters with spaces and collapse runs of whitespace."""
    cleaned = _UNWANTED_CHARS.sub(" ", query)
    cleaned = _WHITESPACE_RUN.sub(" ", cleaned)
    return cleaned.strip()


def detect_intent(actions: Iterable[str], keywords: Iterable[str]) -> QueryIntent:
    """Work out the intent from the normalised actions, then from keyword hints."""
    actions = list(actions)
    for action in actions:
        intent = _ACTION_INTENTS.get(action)
        if intent is not None:
            return intent

    for keyword in keywords:
        if keyword in _CONTENT_KEYWORDS:
            has_view = any(action in _VIEW_ACTIONS for action in actions)
            has_clear = any(action in _CLEAR_ACTIONS for action in actions)
            if has_view or (not has_clear and not actions):
                return QueryIntent.VIEW
            continue
        intent = _KEYWORD_INTENTS.get(keyword)
        if intent is not None:
            return intent

    return QueryIntent.GENERAL


@dataclass
class ProcessedQuery:
    """A query broken down into actions, targets, keywords and an intent."""

    original: str = ""
    cleaned: str = ""
    actions: list[str] = field(default_factory=list)
    targets: list[str] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)
    intent: QueryIntent = QueryIntent.GENERAL
    modifiers: list[str] = field(default_factory=list)

    def enhanced_keywords(self) -> list[str]:
        """Keywords first, then actions and targets, plus intent hints if sparse."""
        enhanced = [*self.keywords, *self.actions, *self.targets]
        if len(enhanced) < _MIN_KEYWORDS_BEFORE_INTENT_HINTS:
            enhanced.extend(_INTENT_HINTS.get(self.intent, ()))
        return remove_duplicates(enhanced)


class QueryProcessor:
    """Turns free-form questions into structured search terms."""

    def __init__(self) -> None:
        self.stop_words = STOP_WORDS
        self.synonyms = SYNONYMS
        self.action_words = ACTION_WORDS
        self.target_words = TARGET_WORDS

    def process_query(self, query: str) -> ProcessedQuery:
        """Analyse ``query`` and return its parts."""
        cleaned = clean_query(query)
        words = cleaned.lower().split()

        query_lower = query.lower()
        has_view_context = any(word in query_lower for word in _VIEW_CONTEXT_WORDS)
        has_without_opening = any(phrase in query_lower for phrase in _WITHOUT_OPENING_PHRASES)

        actions: list[str] = []
        targets: list[str] = []
        keywords: list[str] = []
        for word in words:
            if word in self.stop_words:
                continue
            if word in self.action_words:
                actions.extend(self.action_words[word])
                continue
            if word in self.target_words:
                targets.extend(self.target_words[word])
                continue
            keywords.append(word)
            synonyms = self.synonyms.get(word)
            if synonyms:
                keywords.append(synonyms[0])

        if has_view_context and has_without_opening:
            actions.extend(("view", "show", "display"))

        intent = detect_intent(actions, keywords)
        return ProcessedQuery(
            original=query,
            cleaned=cleaned,
            actions=remove_duplicates(actions),
            targets=remove_duplicates(targets),
            keywords=remove_duplicates(keywords),
            intent=intent,
        )