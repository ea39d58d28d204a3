from thefuzz import fuzz

from normalize import calculate_similarity

TITLE_SIMILARITY_THRESHOLD = 0.8


def title_similarity(title1: str, title2: str) -> float:
    """Similarity of two job titles in [0, 1].

    Takes the stronger of the word-set overlap and the token-sort ratio, so
    "Peer Advocate" and "Peer Advocate II" still read as the same role.
    """
    fuzzy = fuzz.token_sort_ratio(title1, title2) / 100
    return max(calculate_similarity(title1, title2), fuzzy)


def is_duplicate(job, existing) -> bool:
    """Same url, or a near-identical title at the same company.

    Both arguments only need `title`, `company` and `url` attributes, so a
    JobListing can be checked against the JobKey rows of active postings.
    """
    if job.url and existing.url and job.url == existing.url:
        return True

    same_company = (job.company or "").lower().strip() == (existing.company or "").lower().strip()
    if not same_company:
        return False
    return title_similarity(job.title or "", existing.title or "") > TITLE_SIMILARITY_THRESHOLD


def find_duplicate(job, existing_jobs):
    """Return the first existing posting that `job` duplicates, or None."""
    for existing in existing_jobs:
        if is_duplicate(job, existing):
            return existing
    return None
