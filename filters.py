import re

from models import JobType, Specialty

# A posting must mention at least one of these to count as a peer support role
PEER_SUPPORT_KEYWORDS = [
    "peer specialist",
    "peer advocate",
    "peer counselor",
    "peer support",
    "recovery coach",
    "crpa",
    "certified recovery peer advocate",
    "certified peer specialist",
    "peer recovery specialist",
    "behavioral health peer",
    "mental health peer",
    "substance use peer",
    "addiction peer",
]

# Checked in order, first hit wins
JOB_TYPE_SIGNALS = [
    (re.compile(r"\bfull[- ]time\b"), JobType.FULL_TIME),
    (re.compile(r"\bpart[- ]time\b"), JobType.PART_TIME),
    (re.compile(r"\bcontract\b"), JobType.CONTRACT),
    (re.compile(r"\btemporary\b|\btemp\b"), JobType.TEMPORARY),
    (re.compile(r"\bremote\b"), JobType.REMOTE),
]

SPECIALTY_SIGNALS = [
    (re.compile(r"substance use|substance abuse|addiction"), Specialty.SUBSTANCE_USE),
    (re.compile(r"mental health|psychiatric"), Specialty.MENTAL_HEALTH),
    (re.compile(r"dual diagnosis|co-occurring"), Specialty.DUAL_DIAGNOSIS),
    (re.compile(r"\byouth\b|adolescent|\bchild"), Specialty.YOUTH_SERVICES),
    (re.compile(r"\bveteran|\bmilitary\b"), Specialty.VETERANS_SERVICES),
    (re.compile(r"\blgbt"), Specialty.LGBTQ_SERVICES),
]


def is_peer_support_job(title: str, description: str | None = None) -> bool:
    """True when the title or description mentions a peer support keyword."""
    combined = f"{title} {description or ''}".lower()
    return any(keyword in combined for keyword in PEER_SUPPORT_KEYWORDS)


def determine_job_type(title: str, description: str) -> str:
    """Infer the employment type from the posting text, defaulting to Full-time."""
    combined = f"{title} {description}".lower()
    for pattern, job_type in JOB_TYPE_SIGNALS:
        if pattern.search(combined):
            return job_type.value
    return JobType.FULL_TIME.value


def determine_specialty(description: str) -> str:
    """Infer the practice area from the description, defaulting to General Peer Support."""
    lower = description.lower()
    for pattern, specialty in SPECIALTY_SIGNALS:
        if pattern.search(lower):
            return specialty.value
    return Specialty.GENERAL.value
