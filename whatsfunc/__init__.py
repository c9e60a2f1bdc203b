"""Query understanding, TF-IDF command search, search history and performance metrics."""

__version__ = "1.2.0"
__all__ = ["history", "tfidf", "metrics", "performance", "nlp"]