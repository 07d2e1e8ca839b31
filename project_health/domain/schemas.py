"""
Pydantic schemas for input validation across the application.

These schemas validate project records, weekly assessments and dashboard
filters before they reach the scoring engine.
"""

from __future__ import annotations

import re
from html import unescape
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..infrastructure.config import get_settings
from .models import PortfolioFilter, ProjectStatus, all_sub_keys

WEEK_PATTERN = r"^\d{4}-W\d{2}$"


class BaseValidationSchema(BaseModel):
    """Base schema with common validation utilities."""

    model_config = ConfigDict(
        str_strip_whitespace=True, validate_assignment=True, use_enum_values=True
    )

    @field_validator("*", mode="before")
    @classmethod
    def sanitize_strings(cls, v):
        """Strip markup and control characters from free text."""
        if isinstance(v, str):
            cleaned = unescape(v.strip())
            cleaned = re.sub(
                r"<\s*script[^>]*>.*?<\s*/\s*script\s*>",
                "",
                cleaned,
                flags=re.IGNORECASE | re.DOTALL,
            )
            cleaned = re.sub(r"<[^>]+>", "", cleaned)
            cleaned = re.sub(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]", "", cleaned)
            return cleaned
        return v


class ProjectInput(BaseValidationSchema):
    """Validation schema for creating or editing a project."""

    name: str = Field(..., min_length=1, max_length=255)
    client: str = Field(..., min_length=1, max_length=255)
    leader: str = Field(..., min_length=1, max_length=255)
    delivery: str | None = Field(None, max_length=255)
    tech_lead: str | None = Field(None, max_length=255)

    @field_validator("delivery", "tech_lead")
    @classmethod
    def blank_to_none(cls, v):
        if v is not None and not v.strip():
            return None
        return v


class AssessmentInput(BaseValidationSchema):
    """
    Validation schema for a weekly assessment.

    ``scores`` uses the flat ``<KEY>_<index>`` form and must rate all
    twenty sub-criteria from 1 to 5.
    """

    week: str = Field(..., pattern=WEEK_PATTERN, description="ISO week, e.g. 2024-W07")
    scores: dict[str, int]
    justifications: dict[str, str] = Field(default_factory=dict)

    @field_validator("week")
    @classmethod
    def validate_week_number(cls, v: str) -> str:
        week_number = int(v.split("-W")[1])
        if not (1 <= week_number <= 53):
            raise ValueError("Week number must be between 01 and 53")
        return v

    @field_validator("scores")
    @classmethod
    def validate_scores(cls, v: dict[str, int]) -> dict[str, int]:
        expected = set(all_sub_keys())
        missing = sorted(expected - set(v))
        unknown = sorted(set(v) - expected)
        if missing:
            raise ValueError(f"Missing sub-criterion scores: {', '.join(missing)}")
        if unknown:
            raise ValueError(f"Unknown sub-criteria: {', '.join(unknown)}")
        out_of_range = sorted(k for k, score in v.items() if not (1 <= score <= 5))
        if out_of_range:
            raise ValueError(f"Scores must be between 1 and 5: {', '.join(out_of_range)}")
        return v

    @field_validator("justifications")
    @classmethod
    def validate_justifications(cls, v: dict[str, str]) -> dict[str, str]:
        expected = set(all_sub_keys())
        limit = get_settings().scoring.max_justification_length
        cleaned: dict[str, str] = {}
        for key, text in v.items():
            if key not in expected:
                raise ValueError(f"Unknown sub-criterion: {key}")
            text = (text or "").strip()
            if len(text) > limit:
                raise ValueError(f"Justification for {key} exceeds {limit} characters")
            if text:
                cleaned[key] = text
        return cleaned


class FilterInput(BaseValidationSchema):
    """Validation schema for dashboard filters."""

    year: str | None = Field(None, pattern=r"^\d{4}$")
    delivery: str | None = Field(None, max_length=255)
    leader: str | None = Field(None, max_length=255)
    tech_lead: str | None = Field(None, max_length=255)
    view: Literal["active", "closed"] = "active"

    @model_validator(mode="before")
    @classmethod
    def empty_strings_to_none(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: (None if v == "" else v) for k, v in data.items()}
        return data

    def to_filter(self) -> PortfolioFilter:
        return PortfolioFilter(
            year=self.year,
            delivery=self.delivery,
            leader=self.leader,
            tech_lead=self.tech_lead,
            status_view=ProjectStatus(self.view),
        )


class ValidationErrorDetail(BaseModel):
    field: str
    message: str
    value: Any = None


class ValidationResponse(BaseModel):
    success: bool
    errors: list[ValidationErrorDetail] = []
    data: dict[str, Any] | None = None


def validate_input(schema_class: type[BaseModel], data: dict[str, Any]) -> ValidationResponse:
    """
    Centralized validation function that returns structured validation results.

    Example:
        >>> result = validate_input(FilterInput, {"year": "2024"})
        >>> result.success
        True
    """
    try:
        validated = schema_class(**data)
        return ValidationResponse(success=True, data=validated.model_dump())
    except Exception as e:
        errors = []
        if hasattr(e, "errors"):
            for error in e.errors():
                errors.append(
                    ValidationErrorDetail(
                        field=".".join(str(x) for x in error["loc"]) or "general",
                        message=error["msg"],
                        value=error.get("input"),
                    )
                )
        else:
            errors.append(ValidationErrorDetail(field="general", message=str(e)))

        return ValidationResponse(success=False, errors=errors)
