from __future__ import annotations

import re
import unicodedata

SPACE_RE = re.compile(r"\s+")


def norm_name(s: str) -> str:
    """
    Comparison form of a substation name: NFKC, casefolded, whitespace
    collapsed. Punctuation is kept ('Sub 12-A' and 'Sub 12 A' differ).
    """
    if not isinstance(s, str):
        return ""
    x = unicodedata.normalize("NFKC", s)
    x = x.casefold()
    return SPACE_RE.sub(" ", x).strip()


def same_name(a: str, b: str) -> bool:
    na, nb = norm_name(a), norm_name(b)
    # empty names carry no identity
    return bool(na) and na == nb
