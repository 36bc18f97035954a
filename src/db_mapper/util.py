"""Small record and string helpers."""

import hashlib
import random
import re
import uuid as _uuid
from typing import Any


def uuid() -> str:
    """Generate a random (version 4) UUID string."""
    return str(_uuid.uuid4())


def hashify(seed: str | int | float | None = None, length: int = 64) -> str:
    """Hex SHA-256 digest of ``seed``, truncated to ``length`` characters.

    A falsy seed is replaced with a random number, so ``hashify()`` returns a
    random hex string.

    Examples:
        >>> hashify("abc", 8)
        'ba7816bf'
    """
    seed = seed or random.random()
    return hashlib.sha256(str(seed).encode("utf-8")).hexdigest()[:length]


def slugify(text: str, hash_length: int = 0) -> str:
    """Convert a sentence to a URL slug, optionally with a random hash suffix.

    Examples:
        >>> slugify("Hello, World!")
        'hello-world'
    """
    slug = re.sub(r"['!\"&%]", "", text.lower())
    slug = re.sub(r"[^a-z0-9]", "-", slug)
    slug = re.sub(r"-+", "-", slug).strip("-")
    if hash_length > 0:
        slug += "-" + hashify(None, hash_length)
    return slug


def filter_keys(record: dict[str, Any], keys: list[str]) -> dict[str, Any]:
    """Return a copy of ``record`` keeping only ``keys``."""
    return {key: value for key, value in record.items() if key in keys}
