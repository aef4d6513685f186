"""Identifier generation utilities for steamdoc."""

import itertools
import time
import uuid
from typing import Callable


BLOCK_PREFIX = "block"
DOCUMENT_PREFIX = "doc"
DIFF_PREFIX = "diff"

IdFactory = Callable[[], str]


def generate_block_id() -> str:
    """
    Generate a random block ID.

    Used for blocks created by a parse or by add_block without an explicit ID.

    Returns:
        ID string in the form "block-<12 hex chars>"

    Example:
        >>> generate_block_id()
        "block-3f9a0c41d2e7"
    """
    return f"{BLOCK_PREFIX}-{uuid.uuid4().hex[:12]}"


def generate_document_id() -> str:
    """
    Generate a document ID from the current time plus a random suffix.

    Returns:
        ID string in the form "doc-<millis>-<4 hex chars>"
    """
    return f"{DOCUMENT_PREFIX}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:4]}"


def generate_diff_id() -> str:
    """
    Generate a pending diff ID.

    Returns:
        ID string in the form "diff-<millis>-<6 hex chars>"
    """
    return f"{DIFF_PREFIX}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}"


def positional_ids(prefix: str = BLOCK_PREFIX) -> IdFactory:
    """
    Create an ID factory that numbers blocks by position: block-0, block-1, ...

    Each call returns a fresh counter, so parsing the same markdown twice with
    two factories yields the same IDs. This is what lets a stateless caller
    generate diffs against one parse and apply them against another.

    Args:
        prefix: ID prefix (default: "block")

    Returns:
        Zero-argument callable returning the next ID
    """
    counter = itertools.count()
    return lambda: f"{prefix}-{next(counter)}"
