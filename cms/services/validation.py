"""Field validators shared by the account and article services.

Each validator records its failures on a :class:`ValidationCollector` and
returns the sanitized value, so a whole form is checked before anything is
reported back.
"""

import re

from email_validator import EmailNotValidError, validate_email

from cms.errors import DomainValidationError, FieldError

PASSWORD_MIN_LENGTH = 6
TITLE_MAX_LENGTH = 200
CONTENT_MIN_LENGTH = 3
CONTENT_MAX_LENGTH = 5000

TITLE_PATTERN = re.compile(r"^[\w'\",.!?\- ]+$", re.ASCII)


class ValidationCollector:
    def __init__(self) -> None:
        self.errors: list[FieldError] = []

    def add(self, field: str, message: str) -> None:
        self.errors.append(FieldError(field, message))

    def has_errors_for(self, field: str) -> bool:
        return any(error.field == field for error in self.errors)

    def raise_if_errors(self) -> None:
        if self.errors:
            raise DomainValidationError(list(self.errors))


def normalize_email(value: str) -> str:
    """Canonical form of an email, identical for signup and every later lookup.

    Addresses email-validator accepts get its IDNA/Unicode normalization;
    anything else is only trimmed and lower-cased.
    """
    email = value.strip()
    try:
        return validate_email(email, check_deliverability=False).normalized.lower()
    except EmailNotValidError:
        return email.lower()


def check_username(collector: ValidationCollector, value: str) -> str:
    username = value.strip()
    if not username:
        collector.add("username", "Username cannot be blank.")
    return username


def check_email(collector: ValidationCollector, value: str) -> str:
    email = value.strip()
    if not email:
        collector.add("email", "Email cannot be blank.")
        return email
    try:
        validated = validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        collector.add("email", "Email format is invalid.")
        return email.lower()
    return validated.normalized.lower()


def check_password(
    collector: ValidationCollector,
    password: str,
    confirmation: str | None,
) -> None:
    """Length rule, plus confirmation match when a confirmation was submitted."""
    if len(password) < PASSWORD_MIN_LENGTH:
        collector.add("password", f"Password must be at least {PASSWORD_MIN_LENGTH} characters.")
    if confirmation is not None and confirmation != password:
        collector.add("password_confirmation", "Password confirmation does not match password")


def check_title(collector: ValidationCollector, value: str) -> str:
    title = value.strip()
    if not title:
        collector.add("title", "Title is required.")
        return title
    if len(title) > TITLE_MAX_LENGTH:
        collector.add("title", f"Title should not exceed {TITLE_MAX_LENGTH} characters.")
    if not TITLE_PATTERN.match(title):
        collector.add(
            "title",
            "Title should only contain letters, numbers, spaces, and '\",.!?- characters.",
        )
    return title


def check_content(collector: ValidationCollector, value: str) -> str:
    content = value.strip()
    if len(content) < CONTENT_MIN_LENGTH:
        collector.add(
            "content", f"Article content must be at least {CONTENT_MIN_LENGTH} characters."
        )
    elif len(content) > CONTENT_MAX_LENGTH:
        collector.add(
            "content", f"Article content should not exceed {CONTENT_MAX_LENGTH} characters."
        )
    return content
