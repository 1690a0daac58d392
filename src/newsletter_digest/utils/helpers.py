"""
通用辅助函数
Helper functions shared across the digest pipeline.

Small, dependency-light utilities: list chunking, text truncation,
date-range formatting, vector similarity and article id hashing.
"""

import hashlib
import math
from datetime import datetime
from typing import Any, Sequence

import numpy as np


def chunk(items: Sequence[Any], size: int) -> list[list[Any]]:
    """
    Split a sequence into consecutive chunks of at most ``size`` items.

    Args:
        items: Items to split
        size: Maximum chunk size (must be positive)

    Returns:
        List of chunks, the last one possibly shorter

    Raises:
        ValueError: size is not positive

    Examples:
        >>> chunk([1, 2, 3, 4, 5], 2)
        [[1, 2], [3, 4], [5]]
    """
    if size <= 0:
        raise ValueError(f"chunk size must be positive, got {size}")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


def truncate(text: str, max_length: int) -> str:
    """
    Truncate text to ``max_length`` characters, ending with an ellipsis.

    Examples:
        >>> truncate("hello world", 8)
        'hello...'
        >>> truncate("short", 10)
        'short'
    """
    if len(text) <= max_length:
        return text
    return text[:max(max_length - 3, 0)] + "..."


def format_date_range(start_date: datetime, end_date: datetime) -> str:
    """
    Format a date range for digest headers.

    Examples:
        >>> format_date_range(datetime(2025, 3, 1), datetime(2025, 3, 8))
        'Mar 1 - Mar 8, 2025'
    """
    start = f"{start_date.strftime('%b')} {start_date.day}"
    end = f"{end_date.strftime('%b')} {end_date.day}"
    return f"{start} - {end}, {end_date.year}"


def vector_norm(vector: Sequence[float]) -> float:
    """Euclidean norm of a vector."""
    return float(np.linalg.norm(np.asarray(vector, dtype=float)))


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity between two vectors.

    Returns 0.0 when either vector has zero magnitude.

    Examples:
        >>> cosine_similarity([1.0, 0.0], [1.0, 0.0])
        1.0
        >>> cosine_similarity([1.0, 0.0], [0.0, 0.0])
        0.0
    """
    va = np.asarray(a, dtype=float)
    vb = np.asarray(b, dtype=float)
    denominator = np.linalg.norm(va) * np.linalg.norm(vb)
    if denominator == 0:
        return 0.0
    return float(np.dot(va, vb) / denominator)


def generate_article_id(source: str, subject: str, date: datetime | str) -> str:
    """
    Stable article id from source, subject and timestamp.

    The same triple always yields the same id, so it can be used as a cache
    key across runs.
    """
    stamp = date.isoformat() if isinstance(date, datetime) else str(date)
    key = f"{source}-{subject}-{stamp}"
    return hashlib.md5(key.encode("utf-8")).hexdigest()[:16]


def estimate_word_count(text: str) -> int:
    """Whitespace-delimited word count."""
    return len(text.split())


def estimate_tokens(text: str) -> int:
    """Rough token estimate (4 characters per token)."""
    return math.ceil(len(text) / 4)
