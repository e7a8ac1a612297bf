"""Annotation composer.

Two profiles read the same description:

- the *generic* profile (tech stack, experience, visa flag, security
  clearance, education, salary, location type, summary), always run against
  the generic pattern library;
- the *regional* profile (market salary patterns and currency, work-permit
  structure, district and MTR line, languages, industry, benefits, and the
  market-extended tech stack and location vocabulary), run only when a market
  library is active.

Each profile yields an `AnnotationDraft`. `merge_drafts` combines them with
one rule: a field the regional draft populated wins, a field it left as None
is filled from the generic draft. `finalize` then applies the defaults.
"""

from __future__ import annotations

from typing import Any, Optional

from . import extractors as ex
from .models import Annotation, AnnotationDraft
from .patterns import GENERIC, PatternLibrary, get_library
from .utils import clean_text


def generic_draft(text: Any, library: PatternLibrary = GENERIC) -> AnnotationDraft:
    t = clean_text(text)
    return AnnotationDraft(
        tech_stack=ex.extract_tech_stack(t, library),
        years_of_experience=ex.extract_years_of_experience(t, library),
        visa_sponsorship=ex.check_visa_sponsorship(t, library),
        security_clearance=ex.check_security_clearance(t, library),
        education=ex.extract_education(t, library),
        salary=ex.extract_salary(t, library),
        location_type=ex.extract_location_type(t, library),
        summary=ex.summarize_responsibilities(t, library),
    )


def regional_draft(text: Any, library: PatternLibrary) -> AnnotationDraft:
    """Market-specific fields. Fields with nothing found are left unset
    (None) where the generic profile can still supply a value."""
    t = clean_text(text)
    return AnnotationDraft(
        tech_stack=ex.extract_tech_stack(t, library),
        salary=ex.extract_salary(t, library),
        work_permit=ex.extract_work_permit(t, library),
        location_type=ex.extract_location_type(t, library),
        district=ex.extract_district(t, library),
        mtr_line=ex.extract_mtr_line(t, library),
        languages=ex.extract_languages(t, library),
        industry=ex.classify_industry(t, library),
        benefits=ex.extract_benefits(t, library),
    )


def merge_drafts(generic: AnnotationDraft, regional: Optional[AnnotationDraft]) -> AnnotationDraft:
    """Regional overrides generic on conflict; generic fills regional gaps."""
    if regional is None:
        return generic
    base = generic.model_dump(exclude_none=True)
    base.update(regional.model_dump(exclude_none=True))
    return AnnotationDraft.model_validate(base)


def finalize(draft: AnnotationDraft, library: PatternLibrary = GENERIC) -> Annotation:
    """Turn a merged draft into an Annotation, applying field defaults.

    When a market library is active, a salary without a currency takes the
    market currency.
    """
    values = draft.model_dump(exclude_none=True)
    salary = draft.salary
    if salary is not None and salary.currency is None and library.currency:
        values["salary"] = salary.model_copy(update={"currency": library.currency})
    return Annotation.model_validate(values)


def compose(text: Any, market: Optional[str] = None) -> Annotation:
    """Annotate one description.

    `market` selects a regional overlay (e.g. "HK"); None or an unknown market
    runs the generic profile only. Pure and deterministic.
    """
    library = get_library(market)
    generic = generic_draft(text, GENERIC)
    regional = regional_draft(text, library) if library.regional else None
    return finalize(merge_drafts(generic, regional), library)
