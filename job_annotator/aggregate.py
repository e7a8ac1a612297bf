"""Aggregation engine: market statistics and trending technologies.

Windows are by job creation time and half-open on the old side: a job is in
"the last N days" when `created_at > now - N days`.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional

from .models import CountRow, IndustryRow, Job, MarketStats, OverviewStats, Sponsorship, TrendingSkill

TOP_TECHNOLOGIES = 20
TRENDING_TOP_N = 20

# Growth reported for a technology with no mentions in the previous window.
NEW_TECH_GROWTH = 100.0


def in_window(
    jobs: Iterable[Job],
    start: datetime,
    end: Optional[datetime] = None,
    source: Optional[str] = None,
) -> List[Job]:
    """Jobs with `start < created_at` (and `created_at <= end` when given)."""
    return [
        j for j in jobs
        if j.created_at > start
        and (end is None or j.created_at <= end)
        and (source is None or j.source == source)
    ]


def _mean(values: List[int]) -> Optional[float]:
    if not values:
        return None
    return round(sum(values) / len(values), 2)


def _rows(counter: Counter, limit: Optional[int] = None) -> List[CountRow]:
    ordered = sorted(counter.items(), key=lambda kv: (-kv[1], kv[0]))
    if limit is not None:
        ordered = ordered[:limit]
    return [CountRow(name=name, job_count=count) for name, count in ordered]


def tech_counts(jobs: Iterable[Job]) -> Counter:
    """Number of jobs mentioning each technology."""
    counts: Counter = Counter()
    for j in jobs:
        counts.update(set(j.annotation.tech_stack))
    return counts


def _visa_sponsored(job: Job) -> bool:
    a = job.annotation
    return a.visa_sponsorship is Sponsorship.YES or a.work_permit.visa_sponsorship_available


def overview_from(jobs: List[Job]) -> OverviewStats:
    salaries = [j.annotation.salary for j in jobs if j.annotation.salary is not None]
    return OverviewStats(
        total_jobs=len(jobs),
        total_companies=len({j.company for j in jobs if j.company}),
        avg_salary_min=_mean([s.min for s in salaries]),
        avg_salary_max=_mean([s.max for s in salaries]),
        visa_sponsored_jobs=sum(1 for j in jobs if _visa_sponsored(j)),
        pr_required_jobs=sum(1 for j in jobs if j.annotation.work_permit.permanent_resident_required),
    )


def overview_stats(
    jobs: Iterable[Job],
    now: datetime,
    window_days: int = 30,
    source: Optional[str] = None,
) -> OverviewStats:
    """Counts and averages over jobs created in the last `window_days`."""
    return overview_from(in_window(jobs, now - timedelta(days=window_days), source=source))


def market_stats(
    jobs: Iterable[Job],
    now: datetime,
    window_days: int = 30,
    source: Optional[str] = None,
) -> MarketStats:
    """Overview plus technology, district, industry and language breakdowns."""
    window = in_window(jobs, now - timedelta(days=window_days), source=source)

    districts = Counter(j.annotation.district for j in window if j.annotation.district)
    languages: Counter = Counter()
    for j in window:
        languages.update(set(j.annotation.languages))

    by_industry: Dict[str, List[Job]] = defaultdict(list)
    for j in window:
        by_industry[j.annotation.industry].append(j)
    industry_rows = [
        IndustryRow(
            industry=name,
            job_count=len(members),
            avg_salary=_mean([m.annotation.salary.max for m in members if m.annotation.salary is not None]),
        )
        for name, members in by_industry.items()
    ]
    industry_rows.sort(key=lambda r: (-r.job_count, r.industry))

    return MarketStats(
        overview=overview_from(window),
        top_technologies=_rows(tech_counts(window), TOP_TECHNOLOGIES),
        district_distribution=_rows(districts),
        industry_breakdown=industry_rows,
        language_requirements=_rows(languages),
        window_days=window_days,
        generated_at=now,
    )


def growth_percentage(current: int, previous: int) -> float:
    """Percent change; a technology absent from the previous window counts as +100%."""
    if previous == 0:
        return NEW_TECH_GROWTH
    return round((current - previous) / previous * 100, 2)


def trending(
    jobs: Iterable[Job],
    now: datetime,
    current_days: int = 7,
    previous_days: Optional[int] = None,
    top_n: int = TRENDING_TOP_N,
    source: Optional[str] = None,
) -> List[TrendingSkill]:
    """Technologies ranked by growth between two adjacent windows.

    The current window is the last `current_days`; the previous window is the
    `previous_days` (default: same length) immediately before it. Technologies
    with no current mentions are dropped. Sorted by growth, then current count,
    both descending.
    """
    previous_days = current_days if previous_days is None else previous_days
    jobs = list(jobs)
    boundary = now - timedelta(days=current_days)
    current = tech_counts(in_window(jobs, boundary, source=source))
    previous = tech_counts(in_window(jobs, boundary - timedelta(days=previous_days), boundary, source=source))

    rows = [
        TrendingSkill(
            technology=tech,
            current_count=current[tech],
            previous_count=previous[tech],
            growth_percentage=growth_percentage(current[tech], previous[tech]),
        )
        for tech in set(current) | set(previous)
        if current[tech] > 0
    ]
    rows.sort(key=lambda r: (-r.growth_percentage, -r.current_count, r.technology))
    return rows[: max(top_n, 0)]
