"""Filter engine.

Evaluates a `FilterSpec` against jobs in memory (`evaluate`, `find`) or
translates it into an equivalent PostgreSQL predicate (`translate`).

All constraints are ANDed. Within a multi-valued field:

- tech stack: ANY overlap by default, ALL when `tech_match="all"`;
- languages, benefits, education: ANY overlap.

Ranges are inclusive. A job whose experience or salary is unknown never
matches a constraint on that field. The min-salary bound is compared against
the job's salary *max* ("the job can pay at least this much"), the max-salary
bound against the job's salary *min*.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Iterable, List, Sequence, Tuple

from .models import FilterSpec, Job, Sponsorship

Predicate = Callable[[Job], bool]

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

ORDER_BY_SQL = "ORDER BY posted_date DESC NULLS LAST, created_at DESC"


def _overlaps(wanted: Sequence[str], have: Iterable[str]) -> bool:
    return bool(set(wanted) & set(have))


def _contains_all(wanted: Sequence[str], have: Iterable[str]) -> bool:
    return set(wanted) <= set(have)


def _search_hit(job: Job, needle: str) -> bool:
    haystacks = (job.title, job.company, job.description, job.annotation.summary)
    return any(needle in (h or "").lower() for h in haystacks)


def _work_permit_hit(job: Job, category: str) -> bool:
    wp = job.annotation.work_permit
    if category == "pr_required":
        return wp.permanent_resident_required
    if category == "visa_available":
        return wp.visa_sponsorship_available
    return wp.work_visa_accepted


def _bool_sponsorship(value: bool) -> Sponsorship:
    return Sponsorship.YES if value else Sponsorship.NO


def predicates(spec: FilterSpec) -> List[Predicate]:
    """One predicate per constrained field."""
    out: List[Predicate] = []

    if spec.search and spec.search.strip():
        needle = spec.search.strip().lower()
        out.append(lambda j: _search_hit(j, needle))
    if spec.source:
        out.append(lambda j: j.source == spec.source)

    if spec.tech_stack:
        test = _contains_all if spec.tech_match == "all" else _overlaps
        out.append(lambda j: test(spec.tech_stack, j.annotation.tech_stack))
    if spec.languages:
        out.append(lambda j: _overlaps(spec.languages, j.annotation.languages))
    if spec.benefits:
        out.append(lambda j: _overlaps(spec.benefits, j.annotation.benefits))
    if spec.education:
        out.append(lambda j: _overlaps(spec.education, j.annotation.education))

    if spec.min_experience is not None:
        out.append(lambda j: j.annotation.years_of_experience is not None
                   and j.annotation.years_of_experience >= spec.min_experience)
    if spec.max_experience is not None:
        out.append(lambda j: j.annotation.years_of_experience is not None
                   and j.annotation.years_of_experience <= spec.max_experience)
    if spec.min_salary is not None:
        out.append(lambda j: j.annotation.salary is not None and j.annotation.salary.max >= spec.min_salary)
    if spec.max_salary is not None:
        out.append(lambda j: j.annotation.salary is not None and j.annotation.salary.min <= spec.max_salary)

    if spec.district:
        out.append(lambda j: j.annotation.district == spec.district)
    if spec.industry:
        out.append(lambda j: j.annotation.industry == spec.industry)
    if spec.work_permit:
        out.append(lambda j: _work_permit_hit(j, spec.work_permit))
    if spec.location_type:
        out.append(lambda j: j.annotation.location_type == spec.location_type)

    if spec.visa_sponsorship is not None:
        wanted = _bool_sponsorship(spec.visa_sponsorship)
        out.append(lambda j: j.annotation.visa_sponsorship is wanted)
    if spec.security_clearance is not None:
        out.append(lambda j: j.annotation.security_clearance == spec.security_clearance)
    if spec.expired is not None:
        out.append(lambda j: j.expired == spec.expired)

    return out


def matches(job: Job, spec: FilterSpec) -> bool:
    return all(p(job) for p in predicates(spec))


def evaluate(spec: FilterSpec, jobs: Iterable[Job]) -> List[Job]:
    """All jobs satisfying `spec`, in input order (no pagination)."""
    preds = predicates(spec)
    return [j for j in jobs if all(p(j) for p in preds)]


def _newest_first(job: Job) -> Tuple[bool, float, float]:
    posted = job.posted_date
    return (
        posted is None,
        -(posted or _EPOCH).timestamp(),
        -job.created_at.timestamp(),
    )


def find(spec: FilterSpec, jobs: Iterable[Job]) -> Tuple[List[Job], int]:
    """Filter, order newest-posted first (undated last), and paginate.

    Returns `(page_items, total_matches)`.
    """
    hits = sorted(evaluate(spec, jobs), key=_newest_first)
    return hits[spec.offset: spec.offset + spec.limit], len(hits)


def _like(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


_WORK_PERMIT_SQL = {
    "pr_required": "work_permit_required = true",
    "visa_available": "visa_sponsorship_available = true",
    "work_visa_accepted": "work_visa_accepted = true",
}


def translate(spec: FilterSpec) -> Tuple[str, List[Any]]:
    """PostgreSQL WHERE clause (psycopg `%s` placeholders) and its parameters.

    Assumes the `jobs` table layout with array columns `tech_stack`,
    `languages`, `benefits`, `education_requirements`. Pagination is not
    included; use `ORDER_BY_SQL` with `LIMIT spec.limit OFFSET spec.offset`.
    """
    clauses: List[str] = []
    params: List[Any] = []

    def add(sql: str, *values: Any) -> None:
        clauses.append(sql)
        params.extend(values)

    if spec.search and spec.search.strip():
        pattern = _like(spec.search.strip())
        add(
            "(title ILIKE %s OR company ILIKE %s OR description ILIKE %s OR summary ILIKE %s)",
            pattern, pattern, pattern, pattern,
        )
    if spec.source:
        add("source = %s", spec.source)

    if spec.tech_stack:
        op = "@>" if spec.tech_match == "all" else "&&"
        add(f"tech_stack {op} %s::text[]", list(spec.tech_stack))
    if spec.languages:
        add("languages && %s::text[]", list(spec.languages))
    if spec.benefits:
        add("benefits && %s::text[]", list(spec.benefits))
    if spec.education:
        add("education_requirements && %s::text[]", list(spec.education))

    if spec.min_experience is not None:
        add("years_experience >= %s", spec.min_experience)
    if spec.max_experience is not None:
        add("years_experience <= %s", spec.max_experience)
    if spec.min_salary is not None:
        add("salary_max >= %s", spec.min_salary)
    if spec.max_salary is not None:
        add("salary_min <= %s", spec.max_salary)

    if spec.district:
        add("district = %s", spec.district)
    if spec.industry:
        add("industry = %s", spec.industry)
    if spec.work_permit:
        add(_WORK_PERMIT_SQL[spec.work_permit])
    if spec.location_type:
        add("location_type = %s", spec.location_type)

    if spec.visa_sponsorship is not None:
        add("visa_sponsorship = %s", _bool_sponsorship(spec.visa_sponsorship).value)
    if spec.security_clearance is not None:
        add("security_clearance = %s", spec.security_clearance)
    if spec.expired is not None:
        add("expired = %s", spec.expired)

    if not clauses:
        return "TRUE", []
    return " AND ".join(clauses), params

