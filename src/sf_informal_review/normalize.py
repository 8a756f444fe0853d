"""Address normalization for Assessor-Recorder roll records.

The roll stores ``property_location`` as positional fields glued together, e.g.
``"0000 1625 PACIFIC             AV0007"``: a zero-padded primary number, a
zero-padded secondary number (sometimes with a letter fused on), the street
name padded with spaces, the street-type suffix and a zero-padded unit.
"""

from __future__ import annotations

import re
from typing import FrozenSet, Iterable, List, Optional, Sequence

STREET_SUFFIXES: Sequence[str] = (
    "ST",
    "AVE",
    "AV",
    "BLVD",
    "BL",
    "DR",
    "CT",
    "PL",
    "WAY",
    "LN",
    "RD",
    "TER",
    "CIR",
    "HWY",
)

# Words dropped from free-text queries: they match nearly every row.
QUERY_SUFFIX_WORDS: FrozenSet[str] = frozenset(STREET_SUFFIXES) | frozenset(
    {
        "STREET",
        "AVENUE",
        "BOULEVARD",
        "DRIVE",
        "COURT",
        "PLACE",
        "LANE",
        "ROAD",
        "TERRACE",
        "CIRCLE",
        "HIGHWAY",
    }
)

DEFAULT_REGION_TOKENS: Sequence[str] = ("SAN FRANCISCO", "SF", "CA", "CALIFORNIA")

_WHITESPACE_RE = re.compile(r"\s+")
_NUMBER_GROUP_RE = re.compile(r"\d{4}([A-Z])?", re.IGNORECASE)
_LEADING_NUMBER_RE = re.compile(r"^0*(\d+)[A-Z]?\s+", re.IGNORECASE)
_SUFFIX_ALTERNATION = "|".join(STREET_SUFFIXES)
_SUFFIX_RE = re.compile(
    r"^(?P<before>.+)\s(?P<suffix>"
    + _SUFFIX_ALTERNATION
    + r")(?P<after>(?:\s*[#\d].*)?)$",
    re.IGNORECASE,
)
# A name that fills its field leaves no space before the suffix: "NESSXXXXXAV0000".
_GLUED_SUFFIX_RE = re.compile(
    r"^(?P<before>.*[A-Z])(?P<suffix>" + _SUFFIX_ALTERNATION + r")(?P<after>\d.*)$",
    re.IGNORECASE,
)
# A secondary number fused onto the name: "1B", "12C", "B12".
_NAME_ARTIFACT_RE = re.compile(r"^(?:[A-Z]?\d{1,2}[A-Z]?)(?=[A-Z]{3})", re.IGNORECASE)
_UNIT_JUNK_RE = re.compile(r"[^A-Z0-9]", re.IGNORECASE)
_FALLBACK_ZEROS_RE = re.compile(r"^0+(\d)")
_QUERY_PUNCT_RE = re.compile(r"[#.,;:'\"()%_]")
_ZIP_RE = re.compile(r"\b\d{5}(?:-\d{4})?\b")
_SPACED_ORDINAL_RE = re.compile(r"\b(\d+)\s+(ST|ND|RD|TH)\b")


def collapse_whitespace(value: Optional[str]) -> str:
    if value is None:
        return ""
    return _WHITESPACE_RE.sub(" ", str(value)).strip()


def _strip_number_groups(text: str) -> str:
    """Remove 4-digit groups plus a letter glued between two groups."""

    out: List[str] = []
    pos = 0
    for match in _NUMBER_GROUP_RE.finditer(text):
        start, end = match.span()
        letter = match.group(1)
        if letter:
            glued_left = start > 0 and not text[start - 1].isspace()
            followed_by_digit = end < len(text) and text[end].isdigit()
            if not (glued_left or followed_by_digit):
                # "0990GREEN": the letter belongs to the street name.
                end -= 1
        out.append(text[pos:start])
        out.append(" ")
        pos = end
    out.append(text[pos:])
    return "".join(out)


def _primary_number(before: str) -> str:
    for group in re.findall(r"\d{4}", before):
        value = int(group)
        if value > 0:
            return str(value)
    return ""


def parse_address(raw: Optional[str]) -> str:
    """Turn a roll ``property_location`` into ``<number> <name> <suffix>[ #<unit>]``.

    Never raises. Inputs without a recognizable street suffix are only
    whitespace-collapsed and lose the zero padding of their leading number.
    """

    collapsed = collapse_whitespace(raw)
    if not collapsed:
        return ""

    match = _SUFFIX_RE.match(collapsed) or _GLUED_SUFFIX_RE.match(collapsed)
    if not match:
        return _FALLBACK_ZEROS_RE.sub(r"\1", collapsed)

    before = match.group("before")
    suffix = match.group("suffix").upper()
    after = match.group("after")

    number = _primary_number(before)
    name = _strip_number_groups(before)
    if not number:
        leading = _LEADING_NUMBER_RE.match(name.strip())
        if leading:
            number = leading.group(1)
            name = name.strip()[leading.end():]
    name = collapse_whitespace(name)
    name = collapse_whitespace(_NAME_ARTIFACT_RE.sub("", name))

    unit = _UNIT_JUNK_RE.sub("", after).lstrip("0")

    base = " ".join(part for part in (number, name, suffix) if part)
    return f"{base} #{unit}" if unit else base


def address_tokens(address: Optional[str]) -> FrozenSet[str]:
    """Searchable tokens of an address: uppercase words minus street suffixes."""

    canonical = parse_address(address)
    words = _QUERY_PUNCT_RE.sub(" ", canonical.upper()).split()
    return frozenset(w for w in words if w not in QUERY_SUFFIX_WORDS)


def _join_ordinal(match: "re.Match[str]") -> str:
    digits, suffix = match.group(1), match.group(2)
    last_two = int(digits[-2:]) if len(digits) >= 2 else int(digits)
    last = int(digits[-1])
    if 11 <= last_two <= 13:
        expected = "TH"
    else:
        expected = {1: "ST", 2: "ND", 3: "RD"}.get(last, "TH")
    if suffix == expected:
        return f"{digits}{suffix}"
    return match.group(0)


def query_terms(
    text: Optional[str],
    *,
    region_tokens: Iterable[str] = DEFAULT_REGION_TOKENS,
) -> List[str]:
    """Words of a free-text address that every matching roll row must contain.

    Punctuation, city/state/ZIP tokens and generic street suffixes are
    dropped; ``"20 TH"`` is rejoined to ``"20TH"``. Order is preserved.
    """

    cleaned = _QUERY_PUNCT_RE.sub(" ", (text or "").upper())
    cleaned = _SPACED_ORDINAL_RE.sub(_join_ordinal, cleaned)
    for token in region_tokens:
        words = [re.escape(w) for w in str(token).upper().split()]
        if not words:
            continue
        cleaned = re.sub(r"\b" + r"\s*".join(words) + r"\b", " ", cleaned)
    cleaned = _ZIP_RE.sub(" ", cleaned)

    terms: List[str] = []
    for word in cleaned.split():
        if word in QUERY_SUFFIX_WORDS or word in terms:
            continue
        terms.append(word)
    return terms
