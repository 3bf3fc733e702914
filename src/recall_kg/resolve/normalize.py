"""Text normalization shared by the scorer, variant resolvers and stores."""

import re

from unidecode import unidecode

_PUNCTUATION_RE = re.compile(r"[^\w\s]")
_WHITESPACE_RE = re.compile(r"\s+")
_EMAIL_RE = re.compile(r"[\w.-]+@[\w.-]+\.\w+")

# Free mail providers: a shared domain says nothing about a shared employer
FREEMAIL_MARKERS = ("gmail", "yahoo", "hotmail")


def normalize_name(name: str) -> str:
    """Normalize entity text: ASCII, lowercase, no punctuation, single spaces."""
    name = unidecode(name or "").lower()
    name = _PUNCTUATION_RE.sub("", name)
    return _WHITESPACE_RE.sub(" ", name).strip()


def name_tokens(name: str) -> list[str]:
    """Split a name into normalized tokens."""
    normalized = normalize_name(name)
    return normalized.split(" ") if normalized else []


def first_token(name: str) -> str:
    tokens = name_tokens(name)
    return tokens[0] if tokens else ""


def extract_email(text: str | None) -> str | None:
    """Extract the first email address from text (e.g. "Jo <jo@acme.com>")."""
    if not text:
        return None
    match = _EMAIL_RE.search(text)
    return match.group(0).lower() if match else None


def extract_domain(email: str) -> str:
    """Domain part of an email address, or "" if there is none."""
    _, sep, domain = email.partition("@")
    return domain.lower() if sep else ""


def is_freemail(domain: str) -> bool:
    return any(marker in domain for marker in FREEMAIL_MARKERS)


def match_key(value: str) -> str:
    """Key used by stores to find every record of a merged entity.

    Lowercased with whitespace runs collapsed to underscores, so
    "Bob  Smith" and "bob_smith" address the same records.
    """
    return _WHITESPACE_RE.sub("_", (value or "").strip().lower())
