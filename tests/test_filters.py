"""Tests for filters.py: peer support detection and job type / specialty inference."""

import pytest

from filters import determine_job_type, determine_specialty, is_peer_support_job


# --- is_peer_support_job ---


def test_keyword_in_title():
    assert is_peer_support_job("Certified Peer Specialist") is True


def test_keyword_in_description_only():
    assert is_peer_support_job("Case Aide", "Work alongside our recovery coach team") is True


def test_case_insensitive():
    assert is_peer_support_job("PEER ADVOCATE") is True


def test_abbreviation_counts():
    assert is_peer_support_job("Outreach Worker", "CRPA required") is True


def test_unrelated_job_rejected():
    assert is_peer_support_job("Software Engineer", "Build distributed systems") is False


def test_missing_description():
    assert is_peer_support_job("Line Cook", None) is False


# --- determine_job_type ---


@pytest.mark.parametrize("text, expected", [
    ("Full time peer advocate", "Full-time"),
    ("Part-time role, 20 hours", "Part-time"),
    ("Six month contract", "Contract"),
    ("Temporary coverage", "Temporary"),
    ("Temp position", "Temporary"),
    ("Fully remote", "Remote"),
])
def test_job_type_signals(text, expected):
    assert determine_job_type("Peer Specialist", text) == expected


def test_job_type_first_match_wins():
    """Full-time is checked before remote."""
    assert determine_job_type("Remote Peer Specialist", "This is a full-time role") == "Full-time"


def test_job_type_defaults_to_full_time():
    assert determine_job_type("Peer Specialist", "Join our team") == "Full-time"


def test_job_type_temp_needs_whole_word():
    """"attempt" and "template" are not temporary jobs."""
    assert determine_job_type("Peer Specialist", "We attempt to use a template") == "Full-time"


# --- determine_specialty ---


@pytest.mark.parametrize("text, expected", [
    ("Supports clients in addiction recovery", "Substance Use"),
    ("Inpatient psychiatric unit", "Mental Health"),
    ("Co-occurring disorders program", "Dual Diagnosis"),
    ("Adolescent drop-in center", "Youth Services"),
    ("Serving veterans and military families", "Veterans Services"),
    ("LGBTQ community center", "LGBTQ+ Services"),
    ("Affirming care for LGBTQIA+ adults", "LGBTQ+ Services"),
    ("LGBTQ2S youth housing", "Youth Services"),
    ("LGBT seniors program", "LGBTQ+ Services"),
])
def test_specialty_signals(text, expected):
    assert determine_specialty(text) == expected


def test_specialty_first_match_wins():
    """Substance use is checked before mental health."""
    assert determine_specialty("Mental health and substance use services") == "Substance Use"


def test_specialty_defaults_to_general():
    assert determine_specialty("Community outreach") == "General Peer Support"
