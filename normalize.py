"""Text normalization for scraped job data: cleaning, salaries, dates, certifications."""

import re
from datetime import datetime, timedelta, timezone

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

LOCATION_NOT_SPECIFIED = "Location Not Specified"

SALARY_PATTERNS = [
    re.compile(r"\$[\d,]+(?:\.\d{2})?\s*-\s*\$[\d,]+(?:\.\d{2})?"),  # $50,000 - $60,000
    re.compile(r"\$[\d,]+(?:\.\d{2})?"),  # $50,000
    re.compile(r"[\d,]+(?:\.\d{2})?\s*-\s*[\d,]+(?:\.\d{2})?"),  # 50000 - 60000
]

CERTIFICATION_PATTERNS = [
    (re.compile(r"crpa|certified recovery peer advocate", re.IGNORECASE), "CRPA"),
    (re.compile(r"\bcps\b|certified peer specialist", re.IGNORECASE), "CPS"),
    (re.compile(r"cprs|certified peer recovery specialist", re.IGNORECASE), "CPRS"),
    (re.compile(r"\bcrs\b|certified recovery specialist", re.IGNORECASE), "CRS"),
    (re.compile(r"casac|credentialed alcoholism and substance abuse counselor", re.IGNORECASE), "CASAC"),
]

NYC_BOROUGHS = re.compile(r"brooklyn|manhattan|queens|bronx|staten island", re.IGNORECASE)

_DAYS_AGO = re.compile(r"(\d+)\+?\s*days?\s*ago")
_WEEKS_AGO = re.compile(r"(\d+)\+?\s*weeks?\s*ago")
_MONTHS_AGO = re.compile(r"(\d+)\+?\s*months?\s*ago")


def clean_text(text: str) -> str:
    """Collapse whitespace runs to one space and newline runs to one newline, then trim."""
    text = re.sub(r"[^\S\n]+", " ", text)
    text = re.sub(r" ?\n[\n ]*", "\n", text)
    return text.strip()


def format_salary(salary: str | None) -> str | None:
    """Pull a canonical "$X - $Y" / "$X" / "X - Y" out of a salary snippet.

    Falls back to the cleaned snippet when nothing numeric is recognizable.
    """
    if not salary:
        return None

    cleaned = re.sub(r"\s+", " ", salary.strip())
    if not cleaned:
        return None

    for pattern in SALARY_PATTERNS:
        match = pattern.search(cleaned)
        if match:
            return match.group(0)

    return cleaned


def parse_date(date_string: str | None) -> datetime | None:
    """Resolve "3 days ago", "Just posted", "Yesterday" or an absolute date to a UTC datetime."""
    if not date_string:
        return None

    cleaned = date_string.lower().strip()
    if not cleaned:
        return None
    now = datetime.now(timezone.utc)

    if "today" in cleaned or "just posted" in cleaned:
        return now

    if "yesterday" in cleaned:
        return now - timedelta(days=1)

    match = _DAYS_AGO.search(cleaned)
    if match:
        return now - timedelta(days=int(match.group(1)))

    match = _WEEKS_AGO.search(cleaned)
    if match:
        return now - timedelta(days=int(match.group(1)) * 7)

    match = _MONTHS_AGO.search(cleaned)
    if match:
        return now - relativedelta(months=int(match.group(1)))

    try:
        parsed = date_parser.parse(date_string.strip())
    except (ValueError, OverflowError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def extract_certifications(text: str | None) -> list[str]:
    """Return the certification codes mentioned in text, each at most once."""
    if not text:
        return []

    found = [cert for pattern, cert in CERTIFICATION_PATTERNS if pattern.search(text)]
    return list(dict.fromkeys(found))


def calculate_similarity(str1: str, str2: str) -> float:
    """Jaccard similarity of the lowercased word sets; 1.0 for equal strings (including two empties)."""
    s1 = str1.lower().strip()
    s2 = str2.lower().strip()

    if s1 == s2:
        return 1.0

    words1 = set(s1.split())
    words2 = set(s2.split())
    union = words1 | words2
    if not union:
        return 1.0
    return len(words1 & words2) / len(union)


def format_location(location: str | None) -> str:
    if not location:
        return LOCATION_NOT_SPECIFIED

    cleaned = clean_text(location)
    if not cleaned:
        return LOCATION_NOT_SPECIFIED

    # Borough without a state: "Brooklyn" -> "Brooklyn, NY"
    if NYC_BOROUGHS.search(cleaned) and not re.search(r"\bny\b", cleaned, re.IGNORECASE):
        return f"{cleaned}, NY"

    return cleaned
