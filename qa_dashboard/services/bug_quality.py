"""
Bug report quality checks.

Two pure functions over bug records (ORM rows or any object exposing the
same attributes), no DB access:

    detect_duplicates(bugs)  → list of duplicate groups
    scan_for_issues(bug)     → list of missing-field issue strings

Duplicate detection runs two passes whose results are concatenated:
    1. exact-title grouping (trimmed, lower-cased titles)
    2. pairwise description similarity, word-overlap ratio over the union
       of distinct whitespace-separated tokens

The pairwise pass is O(n²) over the full list on every call.
"""

import re

# Descriptions at or below this length are never compared.
MIN_DESCRIPTION_LENGTH = 50

# Pairs are flagged only when similarity is strictly greater than this.
SIMILARITY_THRESHOLD = 0.8

_WHITESPACE_RE = re.compile(r"\s+")


def _bug_ref(bug) -> dict:
    return {"id": bug.id, "title": bug.title}


def normalize_title(title: str | None) -> str:
    """Title key used for exact-duplicate grouping."""
    return (title or "").lower().strip()


def calculate_similarity(text_a: str, text_b: str) -> float:
    """
    Word-overlap ratio between two texts.

    Both texts are split on whitespace runs (a leading or trailing run
    yields an empty token, which takes part in the comparison like any
    other word). The result is the number of distinct tokens present in
    both texts divided by the number of distinct tokens overall.
    """
    words_a = set(_WHITESPACE_RE.split(text_a))
    words_b = set(_WHITESPACE_RE.split(text_b))
    union = words_a | words_b
    shared = words_a & words_b
    return len(shared) / len(union)


def _title_groups(bugs) -> list[dict]:
    groups: dict[str, list] = {}
    for bug in bugs:
        groups.setdefault(normalize_title(bug.title), []).append(bug)

    return [
        {
            "type": "title",
            "value": title,
            "bugs": [_bug_ref(b) for b in members],
        }
        for title, members in groups.items()
        if len(members) > 1
    ]


def _description_pairs(bugs) -> list[dict]:
    pairs = []
    lowered = [(bug.description or "").lower() for bug in bugs]

    for i in range(len(bugs)):
        for j in range(i + 1, len(bugs)):
            desc_i, desc_j = lowered[i], lowered[j]
            if len(desc_i) <= MIN_DESCRIPTION_LENGTH or len(desc_j) <= MIN_DESCRIPTION_LENGTH:
                continue
            similarity = calculate_similarity(desc_i, desc_j)
            if similarity > SIMILARITY_THRESHOLD:
                pairs.append({
                    "type": "description",
                    "value": "Similar descriptions",
                    "bugs": [_bug_ref(bugs[i]), _bug_ref(bugs[j])],
                    "similarity": similarity,
                })
    return pairs


def detect_duplicates(bugs) -> list[dict]:
    """
    Find likely duplicate bugs.

    Args:
        bugs: Sequence of bug records, in the order groups should follow
              (callers pass creation order).

    Returns:
        Title groups first (order of first occurrence), then description
        pairs (i < j in input order). A pair can show up in both passes.
    """
    bugs = list(bugs)
    return _title_groups(bugs) + _description_pairs(bugs)


def scan_for_issues(bug) -> list[str]:
    """Return every missing-field issue for one bug; empty list when clean."""
    issues = []

    if not bug.title or len(bug.title.strip()) < 5:
        issues.append("Title is missing or too short")

    if not bug.description or len(bug.description.strip()) < 10:
        issues.append("Description is missing or too brief")

    if not bug.assignee:
        issues.append("No responsible person assigned")

    if not bug.status:
        issues.append("Status is missing")

    return issues
