"""Pattern library.

Static, read-only registries of keywords and regular expressions, one per
annotation dimension. Registries are grouped into an immutable
`PatternLibrary`; a market-specific library is built with `overlay()`, which
places the market vocabulary *in front of* the generic vocabulary so that, for
first-match dimensions, market-specific patterns are tried first.

Libraries are built once at import time and passed by reference into the
extractors. Nothing here is mutated at runtime.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from functools import lru_cache
from typing import Dict, Optional, Tuple

from .utils import uniq_preserve_order

logger = logging.getLogger(__name__)

_FLAGS = re.IGNORECASE

# Range separators seen in postings: "-", en dash, "~", "to".
_DASH = r"\s*(?:-|–|~|to)\s*"


def _rx(*patterns: str) -> Tuple[re.Pattern, ...]:
    return tuple(re.compile(p, _FLAGS) for p in patterns)


@dataclass(frozen=True)
class SalaryPattern:
    """A two-group salary range pattern.

    `multiplier` applies to both captured amounts (e.g. "20k-40k HKD" captures
    bare "20"/"40"). Amounts that themselves end in "k" are multiplied by 1000
    independently of `multiplier`.
    """

    regex: re.Pattern
    multiplier: int = 1
    currency: Optional[str] = None


def _salary(pattern: str, multiplier: int = 1, currency: Optional[str] = None) -> SalaryPattern:
    return SalaryPattern(re.compile(pattern, _FLAGS), multiplier, currency)


@dataclass(frozen=True)
class PatternLibrary:
    """All registries needed to annotate one market's postings."""

    name: str
    currency: Optional[str] = None
    regional: bool = False

    tech_keywords: Tuple[str, ...] = ()
    experience: Tuple[re.Pattern, ...] = ()
    visa_negative: Tuple[re.Pattern, ...] = ()
    visa_positive: Tuple[re.Pattern, ...] = ()
    clearance: Tuple[re.Pattern, ...] = ()
    education: Tuple[Tuple[str, re.Pattern], ...] = ()
    salary: Tuple[SalaryPattern, ...] = ()
    remote: Tuple[re.Pattern, ...] = ()
    hybrid: Tuple[re.Pattern, ...] = ()
    responsibility_keywords: Tuple[str, ...] = ()

    # Regional-only registries (empty in the generic library).
    permanent_resident: Tuple[re.Pattern, ...] = ()
    visa_available: Tuple[re.Pattern, ...] = ()
    work_visa: Tuple[re.Pattern, ...] = ()
    districts: Tuple[str, ...] = ()
    mtr_lines: Tuple[str, ...] = ()
    languages: Tuple[Tuple[str, re.Pattern], ...] = ()
    industries: Tuple[Tuple[str, re.Pattern], ...] = ()
    benefits: Tuple[Tuple[str, re.Pattern], ...] = ()


@lru_cache(maxsize=None)
def literal_pattern(term: str) -> re.Pattern:
    """Whole-word, case-insensitive matcher for a vocabulary literal."""
    return re.compile(r"(?<!\w)" + re.escape(term) + r"(?!\w)", _FLAGS)


def overlay(base: PatternLibrary, name: str, **extra) -> PatternLibrary:
    """Build a market library from `base`.

    Tuple-valued registries given in `extra` are *prepended* to the base
    registry (market-specific first); keyword lists are deduplicated keeping the
    first occurrence. Scalar fields (`currency`, `regional`) replace the base.
    """
    changes = {"name": name}
    for key, value in extra.items():
        current = getattr(base, key)
        if isinstance(current, tuple):
            merged = tuple(value) + current
            if key in ("tech_keywords", "districts", "mtr_lines", "responsibility_keywords"):
                merged = tuple(uniq_preserve_order(merged))
            changes[key] = merged
        else:
            changes[key] = value
    return replace(base, **changes)


GENERIC_TECH_KEYWORDS = (
    "JavaScript", "TypeScript", "React", "Angular", "Vue", "Node.js", "Python",
    "Java", "C++", "C#", ".NET", "Ruby", "Rails", "PHP", "Laravel", "Django",
    "Flask", "Spring", "Express", "MongoDB", "PostgreSQL", "MySQL", "Redis",
    "Docker", "Kubernetes", "AWS", "Azure", "GCP", "GraphQL", "REST API",
    "Machine Learning", "TensorFlow", "PyTorch", "Scikit-learn", "Pandas",
    "Swift", "Kotlin", "React Native", "Flutter", "Go", "Rust", "Scala",
    "Elasticsearch", "Kafka", "RabbitMQ", "Jenkins", "Git", "CI/CD",
)

RESPONSIBILITY_KEYWORDS = (
    "design", "develop", "implement", "maintain", "lead", "collaborate",
    "architect", "build", "deploy", "optimize", "review", "mentor",
    "analyze", "test", "debug", "document", "integrate", "scale",
)

GENERIC = PatternLibrary(
    name="generic",
    tech_keywords=GENERIC_TECH_KEYWORDS,
    experience=_rx(
        r"(\d+)\+?\s*years?\s*(?:of\s*)?experience",
        r"(\d+)\+?\s*years?\s*(?:of\s*)?professional",
        r"(\d+)\+?\s*years?\s*in\b",
        r"minimum\s*(?:of\s*)?(\d+)\s*years?",
        r"at\s*least\s*(\d+)\s*years?",
    ),
    visa_negative=_rx(
        r"no\s*visa\s*sponsorship",
        r"unable\s*to\s*sponsor",
        r"cannot\s*sponsor",
        r"not\s*able\s*to\s*sponsor",
        r"must\s*be\s*authorized",
        r"must\s*have\s*work\s*authorization",
    ),
    visa_positive=_rx(
        r"visa\s*sponsorship\s*(?:is\s*)?available",
        r"willing\s*to\s*sponsor",
        r"we\s*sponsor",
        r"sponsorship\s*provided",
        r"h1b\s*sponsorship",
    ),
    clearance=_rx(
        r"security\s*clearance\s*(?:is\s*)?required",
        r"must\s*have\s*(?:active\s*)?security\s*clearance",
        r"secret\s*clearance",
        r"top\s*secret",
        r"ts/sci",
        r"clearance\s*required",
    ),
    education=(
        ("Bachelor's", re.compile(r"\bbachelor(?:'|’)?s?\b", _FLAGS)),
        ("Master's", re.compile(r"\bmaster(?:'|’)?s?\b", _FLAGS)),
        ("PhD", re.compile(r"\bph\.?\s?d\b|\bdoctorate\b", _FLAGS)),
        ("Computer Science", re.compile(r"computer\s*science|\bcs\s*degree", _FLAGS)),
        ("Engineering", re.compile(r"engineering\s*degree", _FLAGS)),
        ("Mathematics", re.compile(r"mathematics|\bmaths?\s*degree", _FLAGS)),
    ),
    salary=(
        _salary(r"\$(\d{1,3},?\d{3})" + _DASH + r"\$(\d{1,3},?\d{3})"),
        _salary(r"\$(\d{1,3}k)" + _DASH + r"\$(\d{1,3}k)"),
        _salary(r"(\d{1,3},?\d{3})" + _DASH + r"(\d{1,3},?\d{3})\s*(?:per\s*year|annually)"),
    ),
    remote=_rx(r"remote", r"work\s*from\s*home", r"distributed", r"anywhere"),
    hybrid=_rx(r"hybrid"),
    responsibility_keywords=RESPONSIBILITY_KEYWORDS,
)


HK_TECH_KEYWORDS = (
    "JavaScript", "TypeScript", "React", "Angular", "Vue", "Node.js", "Python",
    "Java", "Spring", "C++", "C#", ".NET", "PHP", "Laravel", "Django",
    # Local market preferences
    "Oracle", "SAP", "Salesforce", "SharePoint", "Power BI", "Tableau",
    # Banking legacy systems
    "COBOL", "AS400", "Mainframe",
    # Financial tech
    "FIX Protocol", "Bloomberg", "Reuters",
    # Language requirements
    "Cantonese", "Mandarin", "Putonghua",
)

HK_DISTRICTS = (
    "Central", "Admiralty", "Wan Chai", "Causeway Bay", "Tsim Sha Tsui",
    "Mong Kok", "Kwun Tong", "Quarry Bay", "Tai Koo", "Sha Tin",
    "Tuen Mun", "Yuen Long", "Science Park", "Cyberport",
)

HK_MTR_LINES = (
    "Island Line", "Tsuen Wan Line", "Kwun Tong Line", "Tseung Kwan O Line",
    "East Rail Line", "West Rail Line",
)

HONG_KONG = overlay(
    GENERIC,
    "HK",
    currency="HKD",
    regional=True,
    tech_keywords=HK_TECH_KEYWORDS,
    salary=(
        _salary(r"HK\$?\s*(\d{1,3},?\d{3})" + _DASH + r"HK\$?\s*(\d{1,3},?\d{3})", currency="HKD"),
        _salary(r"(?:HK)?\$(\d{1,3}k)" + _DASH + r"(?:HK)?\$(\d{1,3}k)", currency="HKD"),
        _salary(r"(\d{2,3})k" + _DASH + r"(\d{2,3})k\s*(?:HKD|HK\$)", multiplier=1000, currency="HKD"),
        _salary(r"月薪\s*[：:]\s*\$?(\d{1,3},?\d{3})" + _DASH + r"\$?(\d{1,3},?\d{3})", currency="HKD"),
    ),
    remote=_rx(r"在家工作"),
    hybrid=_rx(r"混合辦公"),
    permanent_resident=_rx(
        r"permanent\s*resident",
        r"\bHKID\b",
        r"香港永久居民",
        r"持有香港身份證",
    ),
    visa_available=_rx(
        r"visa\s*sponsorship\s*(?:is\s*)?available",
        r"sponsor\s*(?:a\s*)?work\s*visa",
        r"employment\s*visa\s*sponsorship",
    ),
    work_visa=_rx(
        r"valid\s*work\s*visa",
        r"employment\s*visa\s*holders",
    ),
    districts=HK_DISTRICTS,
    mtr_lines=HK_MTR_LINES,
    languages=(
        ("English", re.compile(
            r"(?:fluent|proficient|good|excellent)\s*(?:in\s*)?(?:written\s*and\s*spoken\s*)?english"
            r"|english\s*(?:fluency|proficiency)",
            _FLAGS,
        )),
        ("Cantonese", re.compile(r"cantonese|廣東話|粵語", _FLAGS)),
        ("Mandarin", re.compile(r"mandarin|putonghua|普通話|國語", _FLAGS)),
        ("Japanese", re.compile(r"japanese|日語|日文", _FLAGS)),
        ("Korean", re.compile(r"korean|韓語|韓文", _FLAGS)),
    ),
    # Order matters: the first matching category wins.
    industries=(
        ("Banking & Finance", re.compile(
            r"\bbank|financial|investment|trading|hedge\s*fund|private\s*equity|wealth\s*management", _FLAGS)),
        ("Insurance", re.compile(r"insurance|takaful|actuary|underwriting", _FLAGS)),
        ("Real Estate", re.compile(r"property|real\s*estate|construction|architectural", _FLAGS)),
        ("Retail", re.compile(r"retail|shopping|\bmall\b|luxury|fashion", _FLAGS)),
        ("Logistics", re.compile(r"logistics|shipping|freight|supply\s*chain|warehouse", _FLAGS)),
        ("Technology", re.compile(r"fintech|software|(?-i:\bIT\b)|technology|digital|cyber", _FLAGS)),
        ("Healthcare", re.compile(r"hospital|medical|clinic|pharmaceutical|healthcare", _FLAGS)),
        ("Education", re.compile(r"university|school|education|teaching|academy", _FLAGS)),
        ("Government", re.compile(r"government|civil\s*service|public\s*sector", _FLAGS)),
    ),
    benefits=(
        ("MPF", re.compile(r"(?-i:\bMPF\b)|mandatory\s*provident\s*fund|強積金", _FLAGS)),
        ("Medical Insurance", re.compile(r"medical\s*insurance|health\s*insurance|醫療保險", _FLAGS)),
        ("Dental Coverage", re.compile(r"dental|牙科", _FLAGS)),
        ("Performance Bonus", re.compile(r"performance\s*bonus|discretionary\s*bonus|花紅", _FLAGS)),
        ("Annual Leave", re.compile(r"annual\s*leave|(?-i:\bAL\b)|年假", _FLAGS)),
        ("Education Allowance", re.compile(r"education\s*allowance|study\s*leave", _FLAGS)),
        ("Housing Allowance", re.compile(r"housing\s*allowance|accommodation", _FLAGS)),
        ("Gym Membership", re.compile(r"\bgym\b|fitness|健身", _FLAGS)),
    ),
)

MARKETS: Dict[str, PatternLibrary] = {
    "HK": HONG_KONG,
}


def get_library(market: Optional[str] = None) -> PatternLibrary:
    """Return the library for `market`, or the generic one.

    Unknown market codes fall back to the generic library with a warning.
    """
    if not market:
        return GENERIC
    lib = MARKETS.get(market.strip().upper())
    if lib is None:
        logger.warning("Unknown market %r; using generic patterns", market)
        return GENERIC
    return lib
