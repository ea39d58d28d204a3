from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, HttpUrl


class JobSource(str, Enum):
    INDEED = "Indeed"
    LINKEDIN = "LinkedIn"
    HEALTHCARE_JOB_SITE = "HealthcareJobSite"
    BEHAVIORAL_HEALTH_JOBS = "BehavioralHealthJobs"


class JobType(str, Enum):
    FULL_TIME = "Full-time"
    PART_TIME = "Part-time"
    CONTRACT = "Contract"
    TEMPORARY = "Temporary"
    REMOTE = "Remote"


class Certification(str, Enum):
    CRPA = "CRPA"
    CPS = "CPS"
    CPRS = "CPRS"
    CRS = "CRS"
    CASAC = "CASAC"


class Specialty(str, Enum):
    SUBSTANCE_USE = "Substance Use"
    MENTAL_HEALTH = "Mental Health"
    DUAL_DIAGNOSIS = "Dual Diagnosis"
    YOUTH_SERVICES = "Youth Services"
    VETERANS_SERVICES = "Veterans Services"
    LGBTQ_SERVICES = "LGBTQ+ Services"
    GENERAL = "General Peer Support"


@dataclass
class JobListing:
    title: str
    company: str
    url: str
    source: str  # a JobSource value
    location: str = ""
    description: str = ""
    salary: str | None = None
    job_type: str | None = None
    certifications_req: list[str] = field(default_factory=list)
    specialty: str | None = None
    posted_date: datetime | None = None
    is_active: bool = True
    id: int | None = None
    scraped_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class JobKey:
    """The projection of an active posting used for duplicate checks."""

    title: str
    company: str
    url: str


@dataclass
class JobFilter:
    location: str | None = None
    job_type: str | None = None
    specialty: str | None = None
    certification: str | None = None
    source: str | None = None
    search: str | None = None
    page: int = 1
    limit: int = 50


@dataclass
class SaveOutcome:
    saved: int = 0
    duplicates: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class ScrapeResult:
    source: str
    jobs_scraped: int = 0
    jobs_saved: int = 0
    duplicates_skipped: int = 0
    errors: list[str] = field(default_factory=list)
    duration: int = 0  # milliseconds
    cancelled: bool = False


@dataclass
class SchedulerResult:
    timestamp: datetime
    results: list[ScrapeResult]
    total_jobs_scraped: int
    total_jobs_saved: int
    total_duplicates: int
    total_errors: int
    duration: int  # milliseconds


class JobCreate(BaseModel):
    """Validation schema applied to a candidate right before it is written."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=1)
    company: str = Field(..., min_length=1)
    location: str = Field(..., min_length=1)
    salary: str | None = None
    description: str = Field(..., min_length=1)
    url: HttpUrl
    source: JobSource
    job_type: JobType | None = None
    certifications_req: list[Certification] = Field(default_factory=list)
    specialty: Specialty | None = None
    posted_date: datetime | None = None
    is_active: bool = True


class JobFilterParams(BaseModel):
    """Query-string form of JobFilter; coerces page/limit and checks enums."""

    location: str | None = None
    job_type: JobType | None = None
    specialty: str | None = None
    certification: str | None = None
    source: JobSource | None = None
    search: str | None = None
    page: int = Field(1, ge=1)
    limit: int = Field(50, ge=1, le=100)


def validate_listing(job: JobListing) -> JobListing:
    """Validate a candidate and return it with enum values and certifications normalized.

    Raises pydantic.ValidationError on a malformed candidate. The url is kept
    as scraped, since it is the dedup key.
    """
    checked = JobCreate(
        title=job.title,
        company=job.company,
        location=job.location,
        salary=job.salary,
        description=job.description,
        url=job.url,
        source=job.source,
        job_type=job.job_type,
        certifications_req=job.certifications_req,
        specialty=job.specialty,
        posted_date=job.posted_date,
        is_active=job.is_active,
    )
    return replace(
        job,
        title=checked.title,
        company=checked.company,
        location=checked.location,
        description=checked.description,
        source=checked.source.value,
        job_type=checked.job_type.value if checked.job_type else None,
        certifications_req=list(dict.fromkeys(c.value for c in checked.certifications_req)),
        specialty=checked.specialty.value if checked.specialty else None,
    )


def parse_filter(params: dict) -> JobFilter:
    """Build a JobFilter from raw query parameters. Raises pydantic.ValidationError."""
    checked = JobFilterParams(**{k: v for k, v in params.items() if v not in (None, "")})
    return JobFilter(
        location=checked.location,
        job_type=checked.job_type.value if checked.job_type else None,
        specialty=checked.specialty,
        certification=checked.certification,
        source=checked.source.value if checked.source else None,
        search=checked.search,
        page=checked.page,
        limit=checked.limit,
    )
