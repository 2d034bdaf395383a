"""
Text alignment: original vs enhanced buffer -> EQUAL/INSERT/DELETE operations.

Key idea:
- Myers diff over characters (diff-match-patch), bounded by a time budget so
  pathological input still yields a correct, just coarser, edit script.
- Semantic cleanup to drop short coincidental equalities between edits.
- Consolidate replacements that are fragmented inside a single word
  ("teh" -> "the") into one whole-word replace.
- Operations are normalised: non-empty, no repeated kinds, DELETE before INSERT.
"""

from __future__ import annotations

import re
from typing import Dict, List, Tuple

import structlog
from diff_match_patch import diff_match_patch

from .models import OpKind, Operation

logger = structlog.get_logger(__name__)

_KIND_BY_DMP = {
    diff_match_patch.DIFF_EQUAL: OpKind.EQUAL,
    diff_match_patch.DIFF_INSERT: OpKind.INSERT,
    diff_match_patch.DIFF_DELETE: OpKind.DELETE,
}

_WORD_TOKEN = re.compile(r"\S+|\s+")
_WORD_CHARS = re.compile(r"\w+")
# \A and \Z: `$` would also match before a trailing newline
_LEADING_WORD = re.compile(r"\A\w+")
_TRAILING_WORD = re.compile(r"\w+\Z")

# Token encoding skips the surrogate block.
_FIRST_CODE = 0x100
_SURROGATE_START = 0xD800
_SURROGATE_END = 0xE000


def align(
    original: str,
    enhanced: str,
    *,
    granularity: str = "char",
    timeout_sec: float = 1.0,
    line_mode: bool = True,
    semantic_cleanup: bool = True,
    consolidate_words: bool = True,
) -> List[Operation]:
    """
    Compute the edit script turning `original` into `enhanced`.
    Concatenating EQUAL+DELETE texts rebuilds `original`; EQUAL+INSERT rebuilds `enhanced`.
    """
    if not original and not enhanced:
        return []
    if original == enhanced:
        return [Operation(OpKind.EQUAL, original)]

    dmp = diff_match_patch()
    dmp.Diff_Timeout = timeout_sec

    if granularity == "word":
        raw = _diff_words(dmp, original, enhanced, semantic_cleanup=semantic_cleanup)
    elif granularity == "char":
        raw = dmp.diff_main(original, enhanced, line_mode)
        if semantic_cleanup:
            dmp.diff_cleanupSemantic(raw)
    else:
        raise ValueError(f"Unknown granularity: {granularity!r}")

    ops = _normalize([Operation(_KIND_BY_DMP[op], text) for op, text in raw])
    if consolidate_words and granularity == "char":
        ops = _normalize(consolidate_split_words(ops))

    logger.debug(
        "aligned",
        original_len=len(original),
        enhanced_len=len(enhanced),
        operations=len(ops),
    )
    return ops


def _diff_words(dmp: diff_match_patch, original: str, enhanced: str, *, semantic_cleanup: bool):
    """
    Word-level diff: encode each `\\S+|\\s+` token as one private character,
    diff the encoded strings, then decode back to text.
    """
    token_to_char: Dict[str, str] = {}
    char_to_token: Dict[str, str] = {}
    next_code = _FIRST_CODE

    def encode(text: str) -> str:
        nonlocal next_code
        chars = []
        for token in _WORD_TOKEN.findall(text):
            if token not in token_to_char:
                if next_code == _SURROGATE_START:
                    next_code = _SURROGATE_END
                token_to_char[token] = chr(next_code)
                char_to_token[chr(next_code)] = token
                next_code += 1
            chars.append(token_to_char[token])
        return "".join(chars)

    diffs = dmp.diff_main(encode(original), encode(enhanced), False)
    if semantic_cleanup:
        dmp.diff_cleanupSemantic(diffs)

    return [(op, "".join(char_to_token[c] for c in encoded)) for op, encoded in diffs]


def consolidate_split_words(ops: List[Operation]) -> List[Operation]:
    """
    Merge edit clusters that replace part of a word.

    A cluster is a run of edits joined only by equalities made of word characters.
    When it both deletes and inserts, and is either fragmented or longer than one
    character per side, it becomes a single DELETE+INSERT widened to whole words.
    Single-character substitutions are kept so capitalisation stays visible.
    """
    ops = list(ops)
    out: List[Operation] = []
    n = len(ops)
    i = 0

    while i < n:
        if ops[i].kind is OpKind.EQUAL:
            out.append(ops[i])
            i += 1
            continue

        j = i + 1
        while j < n:
            op = ops[j]
            if op.kind is not OpKind.EQUAL:
                j += 1
            elif j + 1 < n and ops[j + 1].kind is not OpKind.EQUAL and _WORD_CHARS.fullmatch(op.text):
                j += 2
            else:
                break
        cluster = ops[i:j]

        deleted_only = "".join(o.text for o in cluster if o.kind is OpKind.DELETE)
        inserted_only = "".join(o.text for o in cluster if o.kind is OpKind.INSERT)
        fragmented = any(o.kind is OpKind.EQUAL for o in cluster)

        if not (deleted_only and inserted_only) or not (
            fragmented or len(deleted_only) > 1 or len(inserted_only) > 1
        ):
            out.extend(cluster)
            i = j
            continue

        deleted = "".join(o.text for o in cluster if o.kind is not OpKind.INSERT)
        inserted = "".join(o.text for o in cluster if o.kind is not OpKind.DELETE)

        # widen left into a split word
        if out and out[-1].kind is OpKind.EQUAL and _starts_word(deleted, inserted):
            m = _TRAILING_WORD.search(out[-1].text)
            if m:
                head = out[-1].text[: m.start()]
                deleted = m.group() + deleted
                inserted = m.group() + inserted
                out[-1] = Operation(OpKind.EQUAL, head)

        # widen right into a split word
        if j < n and ops[j].kind is OpKind.EQUAL and _ends_word(deleted, inserted):
            m = _LEADING_WORD.match(ops[j].text)
            if m:
                deleted += m.group()
                inserted += m.group()
                ops[j] = Operation(OpKind.EQUAL, ops[j].text[m.end():])

        out.append(Operation(OpKind.DELETE, deleted))
        out.append(Operation(OpKind.INSERT, inserted))
        i = j

    return out


def _starts_word(*texts: str) -> bool:
    return any(_LEADING_WORD.match(t) for t in texts)


def _ends_word(*texts: str) -> bool:
    return any(_TRAILING_WORD.search(t) for t in texts)


def _normalize(ops: List[Operation]) -> List[Operation]:
    """Drop empty ops, merge equal runs, and fold each edit run into DELETE then INSERT."""
    out: List[Operation] = []
    deleted: List[str] = []
    inserted: List[str] = []

    def flush_edits():
        if deleted:
            out.append(Operation(OpKind.DELETE, "".join(deleted)))
        if inserted:
            out.append(Operation(OpKind.INSERT, "".join(inserted)))
        deleted.clear()
        inserted.clear()

    for op in ops:
        if not op.text:
            continue
        if op.kind is OpKind.DELETE:
            deleted.append(op.text)
        elif op.kind is OpKind.INSERT:
            inserted.append(op.text)
        else:
            flush_edits()
            if out and out[-1].kind is OpKind.EQUAL:
                out[-1] = Operation(OpKind.EQUAL, out[-1].text + op.text)
            else:
                out.append(op)
    flush_edits()
    return out


def rebuild(ops: List[Operation]) -> Tuple[str, str]:
    """Reconstruct (original, enhanced) from an operation list."""
    original = "".join(o.text for o in ops if o.kind is not OpKind.INSERT)
    enhanced = "".join(o.text for o in ops if o.kind is not OpKind.DELETE)
    return original, enhanced
