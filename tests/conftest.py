"""Shared test configuration and fixtures for all tests."""

import random

import pytest

from chapterdiff.config import ClassifierConfig
from chapterdiff.store import InMemoryRecordStore
from chapterdiff.tracker import ChangeTracker


ORIGINAL_CHAPTER = (
    "Mara walked to the edge of the cliff. she looked down at the sea, "
    "and teh waves crashed below.\n\n"
    "He said hi.\n"
    "The wind were cold."
)

ENHANCED_CHAPTER = (
    "Mara walked to the edge of the cliff. She looked down at the sea; "
    "the waves crashed below.\n\n"
    'He said, "Hi there."\n'
    "The wind was cold."
)


@pytest.fixture
def original_chapter() -> str:
    return ORIGINAL_CHAPTER


@pytest.fixture
def enhanced_chapter() -> str:
    return ENHANCED_CHAPTER


@pytest.fixture
def classifier_cfg() -> ClassifierConfig:
    return ClassifierConfig()


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def tracker(store) -> ChangeTracker:
    return ChangeTracker(store)


# alphabet with word chars, spaces, newlines, quotes, capitals and punctuation
_ALPHABET = "ab cT.,\"'\n"


def _mutate(rng, text: str) -> str:
    chars = list(text)
    for _ in range(rng.randint(0, 6)):
        pos = rng.randint(0, len(chars))
        action = rng.choice(("insert", "delete", "replace"))
        if action == "insert" or not chars:
            chars.insert(pos, rng.choice(_ALPHABET))
        elif action == "delete":
            del chars[min(pos, len(chars) - 1)]
        else:
            chars[min(pos, len(chars) - 1)] = rng.choice(_ALPHABET)
    return "".join(chars)


def _random_pairs(seed: int, count: int):
    rng = random.Random(seed)
    for _ in range(count):
        original = "".join(rng.choice(_ALPHABET) for _ in range(rng.randint(0, 40)))
        yield original, _mutate(rng, original)


@pytest.fixture
def random_pairs():
    """Seeded (original, enhanced) pairs: random text and a few random edits of it."""
    return _random_pairs
