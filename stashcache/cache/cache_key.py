# stashcache/cache/cache_key.py
"""
Cache Key Module.

Validation and normalisation of the hierarchical keys handed to items, plus
`generate_cache_key`, which turns a function call into a stable key segment
for `Pool.cached`.
"""

from __future__ import annotations
import hashlib
import inspect
import json
import logging
import re
from typing import Any, Callable, Iterable, List, Optional

import numpy as np
import pandas as pd

from ..exceptions import InvalidArgumentError

logger = logging.getLogger(__name__)

DATA_SEGMENT = "cache"
STAMPEDE_SEGMENT = "sp"

# '/' separates levels; the other reserved characters are rejected.
DEFAULT_KEY_PATTERN = r"^[^{}()\\@:]+$"


class KeyValidator:
    """
    Checks user supplied keys against a regular expression.

    Args:
        pattern: Regex the key is tested against, None to accept anything.
        should_match: If False the key is rejected when it *does* match.
    """

    def __init__(self, pattern: Optional[str] = DEFAULT_KEY_PATTERN, should_match: bool = True):
        self.pattern = pattern
        self.should_match = should_match
        self._regex = re.compile(pattern) if pattern is not None else None

    def validate_key(self, key: Any, index: Optional[Any] = None) -> List[str]:
        """Return a list of error messages, empty when the key is valid."""
        where = "" if index is None else f' at "{index}" index'
        if not isinstance(key, str):
            return [
                f"The key identifier{where} has to be provided as string. "
                f"Actual: {type(key).__name__}"
            ]
        if self._regex is None:
            return []
        if bool(self._regex.search(key)) != self.should_match:
            return [f'A cache key "{key}"{where} must match to pattern {self.pattern}']
        return []

    def assert_key(self, key: Any, index: Optional[Any] = None) -> "KeyValidator":
        errors = self.validate_key(key, index)
        if errors:
            raise InvalidArgumentError(" - ".join(errors))
        return self

    def assert_keys(self, keys: Iterable[Any]) -> List[Any]:
        """Validate every key and return them as a list."""
        if isinstance(keys, (str, bytes)) or not hasattr(keys, "__iter__"):
            raise InvalidArgumentError(
                f"keys has to be an iterable. Actual: {type(keys).__name__}"
            )
        keys = list(keys)
        for index, key in enumerate(keys):
            self.assert_key(key, index)
        return keys


def normalize_key(segments: Iterable[Any]) -> List[str]:
    """Prefix the data segment and lower-case every segment."""
    return [DATA_SEGMENT] + [str(segment).lower() for segment in segments]


def stampede_key(key: List[str]) -> List[str]:
    """Return the companion stampede-flag key of a data key."""
    return [STAMPEDE_SEGMENT] + list(key[1:])


def _stable_json_serializer(obj: Any) -> Any:
    """
    Custom JSON serializer for the argument types `generate_cache_key` accepts
    beyond plain JSON: DataFrames, Series, numpy arrays and scalars, sets,
    callables, and objects exposing `__cache_key__`.

    Raises:
        TypeError: If an object cannot be reliably serialized for caching.
    """
    if isinstance(obj, pd.DataFrame):
        return {
            "__type__": "pandas.DataFrame",
            "shape": list(obj.shape),
            "columns": [str(c) for c in obj.columns],
            "content_hash": hashlib.sha256(
                pd.util.hash_pandas_object(obj, index=True).values.tobytes()
            ).hexdigest(),
        }
    elif isinstance(obj, pd.Series):
        return {
            "__type__": "pandas.Series",
            "name": str(obj.name),
            "dtype": str(obj.dtype),
            "content_hash": hashlib.sha256(
                pd.util.hash_pandas_object(obj, index=True).values.tobytes()
            ).hexdigest(),
        }
    elif isinstance(obj, pd.Timestamp):
        return {"__type__": "pandas.Timestamp", "value": obj.isoformat()}
    elif isinstance(obj, np.ndarray):
        return {
            "__type__": "numpy.ndarray",
            "shape": list(obj.shape),
            "dtype": str(obj.dtype),
            "content_hash": hashlib.sha256(np.ascontiguousarray(obj).tobytes()).hexdigest(),
        }
    elif isinstance(obj, np.generic):
        return obj.item()
    elif isinstance(obj, (set, frozenset)):
        return sorted(obj, key=repr)
    elif hasattr(obj, "__cache_key__"):
        try:
            key_repr = obj.__cache_key__()
            json.dumps(key_repr)
            return key_repr
        except Exception as e:
            logger.error(
                f"Error calling or serializing __cache_key__ for object {obj!r}: {e}",
                exc_info=True,
            )
            raise TypeError(
                f"Object's __cache_key__ method failed or returned non-serializable data for {type(obj)}"
            ) from e
    elif inspect.isfunction(obj) or inspect.ismethod(obj):
        return function_name(obj)
    raise TypeError(
        f"Object of type {type(obj).__name__} is not JSON serializable for cache key generation. "
        f"Consider adding a __cache_key__ method or using simpler types."
    )


def function_name(func: Callable) -> str:
    """Dotted `module.qualname` of a callable, used as a key segment."""
    try:
        return f"{func.__module__}.{func.__qualname__}"
    except AttributeError:
        return repr(func)


def generate_cache_key(func: Callable | None = None, *args: Any, **kwargs: Any) -> str:
    """
    Generate a stable SHA-256 key from a function and its arguments.

    Dictionary keys and set elements are sorted, so logically equal inputs
    give the same key.

    Args:
        func: The function being called (optional).
        *args: Positional arguments passed to the function.
        **kwargs: Keyword arguments passed to the function.

    Returns:
        A hex digest usable as a single key segment.

    Raises:
        TypeError: If an argument cannot be serialized stably.
    """
    key_elements = []
    if func is not None:
        key_elements.append(function_name(func))

    try:
        key_elements.append(
            json.dumps(args, default=_stable_json_serializer, sort_keys=True, separators=(",", ":"))
        )
        key_elements.append(
            json.dumps(
                sorted(kwargs.items()),
                default=_stable_json_serializer,
                sort_keys=True,
                separators=(",", ":"),
            )
        )
    except TypeError as e:
        logger.error(f"Failed to serialize arguments for cache key: {e}")
        raise TypeError(f"Cannot generate cache key: {e}") from e
    except ValueError as e:
        # json raises ValueError on circular references
        raise TypeError(
            "Cannot generate cache key due to a circular reference in the arguments."
        ) from e

    combined_repr = "|".join(key_elements)
    return hashlib.sha256(combined_repr.encode("utf-8")).hexdigest()
