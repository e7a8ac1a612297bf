"""Field extractors.

One pure function per annotation dimension. Each takes the raw description
text and a `PatternLibrary` and returns a typed value, falling back to a
neutral value ("unknown", empty list, default enum member) when nothing
matches. None of them raise on content: `None`, empty strings and undecodable
bytes are all treated as empty text.

First-match dimensions (experience, salary, district, industry) are expressed
as an ordered sequence of (pattern, handler) pairs folded by `first_match`, so
the precedence is exactly the registry order.
"""

from __future__ import annotations

import re
from typing import Any, Callable, Iterable, List, Optional, Tuple, TypeVar

from .models import LocationType, Salary, Sponsorship, WorkPermit
from .patterns import GENERIC, PatternLibrary, SalaryPattern, literal_pattern
from .utils import clean_text, uniq_preserve_order

T = TypeVar("T")

SUMMARY_MAX_SENTENCES = 3
SUMMARY_FALLBACK_CHARS = 200

_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")


def first_match(
    text: str,
    rules: Iterable[Tuple[re.Pattern, Callable[[re.Match], Optional[T]]]],
) -> Optional[T]:
    """Return the first non-None handler result, trying rules in order."""
    for rx, handler in rules:
        m = rx.search(text)
        if m is None:
            continue
        value = handler(m)
        if value is not None:
            return value
    return None


def _any(patterns: Iterable[re.Pattern], text: str) -> bool:
    return any(rx.search(text) for rx in patterns)


def _labels(registry: Iterable[Tuple[str, re.Pattern]], text: str) -> List[Any]:
    """All labels whose pattern matches, in registry order."""
    return [label for label, rx in registry if rx.search(text)]


def extract_tech_stack(text: Any, library: PatternLibrary = GENERIC) -> List[str]:
    """Canonical keyword names found as case-insensitive substrings, in registry order."""
    t = clean_text(text).lower()
    if not t:
        return []
    hits = [kw for kw in library.tech_keywords if kw.lower() in t]
    return uniq_preserve_order(hits)


def _int_group(m: re.Match) -> Optional[int]:
    try:
        return int(m.group(1))
    except (TypeError, ValueError):
        return None


def extract_years_of_experience(text: Any, library: PatternLibrary = GENERIC) -> Optional[int]:
    """Years from the highest-priority experience pattern that matches, else None."""
    t = clean_text(text)
    return first_match(t, ((rx, _int_group) for rx in library.experience))


def check_visa_sponsorship(text: Any, library: PatternLibrary = GENERIC) -> Sponsorship:
    t = clean_text(text)
    # Any negative phrase settles it, whatever else the text says.
    if _any(library.visa_negative, t):
        return Sponsorship.NO
    if _any(library.visa_positive, t):
        return Sponsorship.YES
    return Sponsorship.UNKNOWN


def check_security_clearance(text: Any, library: PatternLibrary = GENERIC) -> bool:
    return _any(library.clearance, clean_text(text))


def extract_education(text: Any, library: PatternLibrary = GENERIC) -> List[str]:
    """Every matching degree level / field of study, in the fixed registry order."""
    return _labels(library.education, clean_text(text))


def _parse_amount(raw: str, multiplier: int) -> Optional[int]:
    s = raw.replace(",", "").strip().lower()
    thousands = s.endswith("k")
    s = s.rstrip("k")
    if not s.isdigit():
        return None
    value = int(s) * multiplier
    return value * 1000 if thousands else value


def _salary_handler(pattern: SalaryPattern, default_currency: Optional[str]) -> Callable[[re.Match], Optional[Salary]]:
    def handle(m: re.Match) -> Optional[Salary]:
        low = _parse_amount(m.group(1), pattern.multiplier)
        high = _parse_amount(m.group(2), pattern.multiplier)
        if low is None or high is None:
            return None
        if low > high:
            low, high = high, low
        return Salary(min=low, max=high, currency=pattern.currency or default_currency)

    return handle


def extract_salary(text: Any, library: PatternLibrary = GENERIC) -> Optional[Salary]:
    """Salary range from the first salary pattern that parses.

    Thousands separators are stripped and "k" amounts expanded. The currency
    comes from the matching pattern, else the library default (None for the
    generic library).
    """
    t = clean_text(text)
    rules = ((p.regex, _salary_handler(p, library.currency)) for p in library.salary)
    return first_match(t, rules)


def extract_location_type(text: Any, library: PatternLibrary = GENERIC) -> LocationType:
    """Remote beats Hybrid; On-site is the closed-world default."""
    t = clean_text(text)
    if _any(library.remote, t):
        return "Remote"
    if _any(library.hybrid, t):
        return "Hybrid"
    return "On-site"


def _first_literal(vocabulary: Iterable[str], text: str) -> Optional[str]:
    for term in vocabulary:
        if literal_pattern(term).search(text):
            return term
    return None


def extract_district(text: Any, library: PatternLibrary = GENERIC) -> Optional[str]:
    """First district of the fixed list (list order, not text order) named in the text."""
    return _first_literal(library.districts, clean_text(text))


def extract_mtr_line(text: Any, library: PatternLibrary = GENERIC) -> Optional[str]:
    return _first_literal(library.mtr_lines, clean_text(text))


def extract_work_permit(text: Any, library: PatternLibrary = GENERIC) -> WorkPermit:
    """Each work-permit flag is detected independently and defaults to False."""
    t = clean_text(text)
    return WorkPermit(
        permanent_resident_required=_any(library.permanent_resident, t),
        visa_sponsorship_available=_any(library.visa_available, t),
        work_visa_accepted=_any(library.work_visa, t),
    )


def extract_languages(text: Any, library: PatternLibrary = GENERIC) -> List[str]:
    return _labels(library.languages, clean_text(text))


def classify_industry(text: Any, library: PatternLibrary = GENERIC) -> str:
    """Label of the first matching industry category, or "Other"."""
    t = clean_text(text)
    rules = ((rx, lambda _m, label=label: label) for label, rx in library.industries)
    return first_match(t, rules) or "Other"


def extract_benefits(text: Any, library: PatternLibrary = GENERIC) -> List[str]:
    return _labels(library.benefits, clean_text(text))


def summarize_responsibilities(text: Any, library: PatternLibrary = GENERIC) -> str:
    """Deterministic extractive summary.

    Keeps up to three sentences mentioning a responsibility verb, joined with
    ". ". Without any, falls back to the first 200 characters plus "...".
    Empty input yields an empty summary.
    """
    t = clean_text(text)
    if not t.strip():
        return ""

    keywords = library.responsibility_keywords
    relevant: List[str] = []
    for sentence in _SENTENCE_SPLIT_RE.split(t):
        s = " ".join(sentence.split())
        if s and any(k in s.lower() for k in keywords):
            relevant.append(s)
            if len(relevant) >= SUMMARY_MAX_SENTENCES:
                break

    if relevant:
        return ". ".join(relevant)
    return t.strip()[:SUMMARY_FALLBACK_CHARS] + "..."
