# backend/bookpage/services/qualification.py
"""
Qualification questions configured per booking page.

Each field type is its own model with a uniform `validate_value(raw) -> str`;
pages store them as a JSON list in booking_pages.qualification_fields and
bookings store validated answers as a {field_id: str} map.
"""

import json
import logging
import re
from typing import Annotated, ClassVar, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PHONE_RE = re.compile(r"^\+?[0-9 ().\-]{6,20}$")


class AnswerError(ValueError):
    """An answer does not satisfy its field; args[0] is a short code."""


class _BaseField(BaseModel):
    id: str = Field(min_length=1, max_length=100)
    label: str = Field("", max_length=200)
    placeholder: Optional[str] = None
    required: bool = False

    max_length: ClassVar[int] = 500

    def validate_value(self, raw) -> str:
        """Return the cleaned answer ("" when optional and blank)."""
        if raw is None:
            value = ""
        elif isinstance(raw, (str, int, float)) and not isinstance(raw, bool):
            value = str(raw).strip()
        else:
            raise AnswerError("invalid")

        if not value:
            if self.required:
                raise AnswerError("required")
            return ""
        if len(value) > self.max_length:
            raise AnswerError("too_long")
        return self.check(value)

    def check(self, value: str) -> str:
        return value


class TextField(_BaseField):
    type: Literal["text"]


class TextareaField(_BaseField):
    type: Literal["textarea"]

    max_length: ClassVar[int] = 5000


class EmailField(_BaseField):
    type: Literal["email"]

    def check(self, value: str) -> str:
        if not EMAIL_RE.match(value):
            raise AnswerError("invalid_email")
        return value.lower()


class PhoneField(_BaseField):
    type: Literal["phone"]

    def check(self, value: str) -> str:
        if not PHONE_RE.match(value):
            raise AnswerError("invalid_phone")
        return value


class SelectField(_BaseField):
    type: Literal["select"]
    options: list[str] = []

    def check(self, value: str) -> str:
        if value not in self.options:
            raise AnswerError("invalid_choice")
        return value


QualificationField = Annotated[
    Union[TextField, TextareaField, EmailField, PhoneField, SelectField],
    Field(discriminator="type"),
]

_field_adapter = TypeAdapter(QualificationField)


def parse_fields(raw) -> list[_BaseField]:
    """
    Parse stored field definitions.

    Malformed entries are skipped: a broken question must not make the
    whole page unbookable.
    """
    if isinstance(raw, str):
        try:
            raw = json.loads(raw) if raw else []
        except json.JSONDecodeError:
            logger.warning("qualification_fields is not valid JSON, ignoring")
            return []
    if not isinstance(raw, list):
        return []

    fields = []
    for item in raw:
        try:
            fields.append(_field_adapter.validate_python(item))
        except ValidationError:
            logger.warning(f"Skipping malformed qualification field: {item!r}")
    return fields


def validate_answers(
    fields: list[_BaseField],
    answers: dict | None,
) -> tuple[dict[str, str], dict[str, str]]:
    """
    Validate answers against the page's fields.

    Returns:
        (cleaned answers keyed by field id, errors keyed by field id).
        Answers to unknown fields are dropped; blank optional answers too.
    """
    answers = answers or {}
    cleaned: dict[str, str] = {}
    errors: dict[str, str] = {}

    for field in fields:
        try:
            value = field.validate_value(answers.get(field.id))
        except AnswerError as e:
            errors[field.id] = e.args[0]
            continue
        if value:
            cleaned[field.id] = value

    return cleaned, errors
