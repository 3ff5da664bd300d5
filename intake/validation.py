"""Submission field validation and spam heuristics.

Spam detection is deliberately simple: it catches keyboard mashing and
placeholder text, and reports it as an ordinary validation error."""

from __future__ import annotations

import logging
import re

from .models import RequestDraft

logger = logging.getLogger(__name__)

MIN_NAME_LENGTH = 2
MIN_DESCRIPTION_LENGTH = 10
MAX_DESCRIPTION_LENGTH = 1000
MIN_CONTACT_INFO_LENGTH = 3

EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
CONTACT_HANDLE_REGEX = re.compile(r"^[a-zA-Z0-9._]{2,32}#?[0-9]{0,4}$")

SPAM_PATTERNS = [
    re.compile(r"(.)\1{4,}"),  # same character 5+ times in a row
    re.compile(r"(.{1,3})\1{3,}"),  # short chunk repeated 4+ times
    re.compile(r"^[^a-zA-Z]*$"),  # no letters at all
]

SPAM_WORDS = frozenset(
    {
        "test",
        "testing",
        "sample",
        "example",
        "asdf",
        "qwerty",
        "lorem",
        "ipsum",
        "placeholder",
        "dummy",
        "fake",
        "spam",
        "random",
        "nothing",
        "idk",
        "whatever",
        "anything",
        "something",
    }
)

SPAM_WORD_RATIO = 0.3
MIN_UNIQUE_WORD_RATIO = 0.5
UNIQUENESS_MIN_WORDS = 5


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_REGEX.match(email.strip()))


def is_valid_contact_handle(handle: str) -> bool:
    return bool(CONTACT_HANDLE_REGEX.match(handle.strip()))


def spam_reason(text: str) -> str | None:
    """Return why text looks like spam, or None if it looks genuine."""
    clean = text.lower().strip()
    if not clean:
        return None

    for pattern in SPAM_PATTERNS:
        if pattern.search(clean):
            return f"matches spam pattern {pattern.pattern!r}"

    words = clean.split()
    placeholder_count = sum(1 for word in words if word in SPAM_WORDS or len(word) < 2)
    if placeholder_count / len(words) > SPAM_WORD_RATIO:
        return "too many placeholder words"

    if len(words) >= UNIQUENESS_MIN_WORDS and len(set(words)) / len(words) < MIN_UNIQUE_WORD_RATIO:
        return "excessive word repetition"

    return None


def is_spam_text(text: str) -> bool:
    reason = spam_reason(text)
    if reason:
        logger.debug(f"Spam heuristic triggered: {reason}")
    return reason is not None


def validate_draft(draft: RequestDraft) -> list[str]:
    """Check every submitted field and return human-readable reasons (empty when valid)."""
    errors: list[str] = []

    name = (draft.client_name or "").strip()
    if len(name) < MIN_NAME_LENGTH:
        errors.append(f"Name must be at least {MIN_NAME_LENGTH} characters long")
    elif is_spam_text(name):
        errors.append("Please enter a valid name")

    if not draft.email or not is_valid_email(draft.email):
        errors.append("Please enter a valid email address")

    handle = (draft.contact_handle or "").strip()
    if handle and not is_valid_contact_handle(handle):
        errors.append("Please enter a valid Discord username (e.g., username#1234 or username)")

    if not (draft.service_type or "").strip():
        errors.append("Please select a service type")

    description = (draft.description or "").strip()
    if len(description) < MIN_DESCRIPTION_LENGTH:
        errors.append(f"Description must be at least {MIN_DESCRIPTION_LENGTH} characters long")
    elif len(description) > MAX_DESCRIPTION_LENGTH:
        errors.append(f"Description must be less than {MAX_DESCRIPTION_LENGTH} characters")
    elif is_spam_text(description):
        errors.append("Please provide a meaningful project description")

    if len((draft.contact_info or "").strip()) < MIN_CONTACT_INFO_LENGTH:
        errors.append("Please provide valid contact information")

    return errors

