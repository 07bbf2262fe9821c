"""Paper identifier normalization.

Ids reach the engine in several shapes: raw corpus ids from the search
service, ``corpus:``-tagged ids from direct lookups, and ``paper-``/``root-``
prefixed node ids produced by graph front-ends. Normalizing them gives one
canonical key per logical paper.
"""

KNOWN_PREFIXES: tuple[str, ...] = ("corpus:", "paper-", "root-")


def normalize_paper_id(value: object) -> str:
    """Strip known synthetic prefixes from the front of an id and trim it.

    Prefixes may be stacked (``corpus:paper-123``); stripping repeats until
    none remain, so the function is idempotent. Unrecognized formats pass
    through unchanged apart from whitespace.
    """
    if value is None:
        return ""
    normalized = str(value).strip()
    changed = True
    while changed:
        changed = False
        for prefix in KNOWN_PREFIXES:
            if normalized.startswith(prefix):
                normalized = normalized[len(prefix):].strip()
                changed = True
    return normalized


def same_paper(a: object, b: object) -> bool:
    """True if two ids refer to the same paper after normalization."""
    return normalize_paper_id(a) == normalize_paper_id(b)
