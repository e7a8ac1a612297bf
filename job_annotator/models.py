"""Data models for the annotation engine.

The product owns a *stable* schema regardless of where postings come from:
`RawJob` is whatever the scraper hands over, `Annotation` is what we derive
from the description, and `Job` is the canonical stored entity.

This file uses Pydantic v2.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .utils import clean_text


LocationType = Literal["Remote", "Hybrid", "On-site"]

EducationLevel = Literal[
    "Bachelor's",
    "Master's",
    "PhD",
    "Computer Science",
    "Engineering",
    "Mathematics",
]

Language = Literal["English", "Cantonese", "Mandarin", "Japanese", "Korean"]

Industry = Literal[
    "Banking & Finance",
    "Insurance",
    "Real Estate",
    "Retail",
    "Logistics",
    "Technology",
    "Healthcare",
    "Education",
    "Government",
    "Other",
]

Benefit = Literal[
    "MPF",
    "Medical Insurance",
    "Dental Coverage",
    "Performance Bonus",
    "Annual Leave",
    "Education Allowance",
    "Housing Allowance",
    "Gym Membership",
]

WorkPermitCategory = Literal["pr_required", "visa_available", "work_visa_accepted"]

TechMatch = Literal["any", "all"]

JobKey = Tuple[str, str]


class Sponsorship(str, Enum):
    """Tri-state visa sponsorship flag. Negative evidence beats positive."""

    YES = "yes"
    NO = "no"
    UNKNOWN = "unknown"


class Salary(BaseModel):
    model_config = ConfigDict(frozen=True)

    min: int = Field(..., ge=0)
    max: int = Field(..., ge=0)
    currency: Optional[str] = None


class WorkPermit(BaseModel):
    model_config = ConfigDict(frozen=True)

    permanent_resident_required: bool = False
    visa_sponsorship_available: bool = False
    work_visa_accepted: bool = False


class AnnotationDraft(BaseModel):
    """Partial annotation produced by a single profile.

    `None` means the profile did not populate the field, which lets the
    composer tell "not looked at" apart from "looked at and found nothing".
    """

    model_config = ConfigDict(frozen=True)

    tech_stack: Optional[Tuple[str, ...]] = None
    years_of_experience: Optional[int] = None
    visa_sponsorship: Optional[Sponsorship] = None
    work_permit: Optional[WorkPermit] = None
    security_clearance: Optional[bool] = None
    education: Optional[Tuple[EducationLevel, ...]] = None
    salary: Optional[Salary] = None
    location_type: Optional[LocationType] = None
    district: Optional[str] = None
    mtr_line: Optional[str] = None
    languages: Optional[Tuple[Language, ...]] = None
    industry: Optional[Industry] = None
    benefits: Optional[Tuple[Benefit, ...]] = None
    summary: Optional[str] = None


class Annotation(BaseModel):
    """Structured facts derived from one version of a job description.

    Multi-valued fields are tuples, so a computed annotation cannot be
    changed in place.
    """

    model_config = ConfigDict(frozen=True)

    tech_stack: Tuple[str, ...] = ()
    years_of_experience: Optional[int] = Field(default=None, ge=0)
    visa_sponsorship: Sponsorship = Sponsorship.UNKNOWN
    work_permit: WorkPermit = Field(default_factory=WorkPermit)
    security_clearance: bool = False
    education: Tuple[EducationLevel, ...] = ()
    salary: Optional[Salary] = None
    location_type: LocationType = "On-site"
    district: Optional[str] = None
    mtr_line: Optional[str] = None
    languages: Tuple[Language, ...] = ()
    industry: Industry = "Other"
    benefits: Tuple[Benefit, ...] = ()
    summary: str = ""


class RawJob(BaseModel):
    """A job tuple as handed over by a scraper. Every field is optional."""

    source_id: str = ""
    title: str = ""
    company: str = ""
    raw_location: str = ""
    description: str = ""
    posted_date: Union[str, int, float, None] = None
    source_url: str = ""
    search_keyword: Optional[str] = None

    @field_validator("source_id", "title", "company", "raw_location", "description", "source_url", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return clean_text(value)

    @field_validator("posted_date", mode="before")
    @classmethod
    def _scalar_date(cls, value: Any) -> Any:
        # Nested objects or lists from a feed are unparseable, not fatal.
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            return None
        return value

    @field_validator("search_keyword", mode="before")
    @classmethod
    def _scalar_keyword(cls, value: Any) -> Optional[str]:
        if isinstance(value, bool) or not isinstance(value, (str, bytes, int, float)):
            return None
        return clean_text(value).strip() or None


class Job(BaseModel):
    """The canonical stored job. `(source_id, source)` is the natural key."""

    source_id: str
    source: str = Field(..., description="Origin identifier, e.g. 'JobsDB'.")

    title: Optional[str] = None
    company: Optional[str] = None
    raw_location_text: str = ""
    description: str = ""
    posted_date: Optional[datetime] = None
    source_url: Optional[str] = None
    market: Optional[str] = None
    search_keyword: Optional[str] = None

    annotation: Annotation = Field(default_factory=Annotation)

    expired: bool = False
    created_at: datetime
    updated_at: datetime

    @property
    def key(self) -> JobKey:
        return (self.source_id, self.source)


class FilterSpec(BaseModel):
    """A validated search request. Absent fields place no constraint."""

    model_config = ConfigDict(frozen=True)

    search: Optional[str] = None
    source: Optional[str] = None

    tech_stack: List[str] = Field(default_factory=list)
    tech_match: TechMatch = "any"
    languages: List[str] = Field(default_factory=list)
    benefits: List[str] = Field(default_factory=list)
    education: List[str] = Field(default_factory=list)

    min_experience: Optional[int] = Field(default=None, ge=0)
    max_experience: Optional[int] = Field(default=None, ge=0)
    min_salary: Optional[int] = Field(default=None, ge=0)
    max_salary: Optional[int] = Field(default=None, ge=0)

    district: Optional[str] = None
    industry: Optional[str] = None
    work_permit: Optional[WorkPermitCategory] = None
    location_type: Optional[LocationType] = None

    visa_sponsorship: Optional[bool] = None
    security_clearance: Optional[bool] = None
    expired: Optional[bool] = None

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class OverviewStats(BaseModel):
    total_jobs: int = 0
    total_companies: int = 0
    avg_salary_min: Optional[float] = None
    avg_salary_max: Optional[float] = None
    visa_sponsored_jobs: int = 0
    pr_required_jobs: int = 0


class CountRow(BaseModel):
    name: str
    job_count: int


class IndustryRow(BaseModel):
    industry: str
    job_count: int
    avg_salary: Optional[float] = None


class MarketStats(BaseModel):
    overview: OverviewStats
    top_technologies: List[CountRow] = Field(default_factory=list)
    district_distribution: List[CountRow] = Field(default_factory=list)
    industry_breakdown: List[IndustryRow] = Field(default_factory=list)
    language_requirements: List[CountRow] = Field(default_factory=list)
    window_days: int
    generated_at: datetime


class TrendingSkill(BaseModel):
    technology: str
    current_count: int
    previous_count: int
    growth_percentage: float
