import re

import pytest

from models import case_number
from utils.hotspots import haversine_meters, hotspot_risk
from utils.safety_score import risk_level, score_from_counts
from utils.security import check_password, clean_text, generate_user_id, hash_password, parse_origins


@pytest.mark.parametrize(
    "score, expected",
    [(100, "Low"), (70, "Low"), (69.99, "Medium"), (40, "Medium"), (39.5, "High"), (0, "High")],
)
def test_risk_level_bands(score, expected):
    assert risk_level(score) == expected


def test_score_from_counts_weights_and_floor():
    assert score_from_counts(0, 0, 0) == 100.0
    assert score_from_counts(1, 0, 1) == 60.0
    assert score_from_counts(1, 1, 1) == 40.0
    assert score_from_counts(5, 0, 0) == 0.0
    assert score_from_counts(1, 0, 0, ceiling=4) == 25.0


def test_haversine_known_distance():
    # One degree of latitude is roughly 111 km.
    assert haversine_meters(0, 0, 1, 0) == pytest.approx(111_195, rel=1e-3)
    assert haversine_meters(40.7128, -74.0060, 40.7128, -74.0060) == 0


def test_hotspot_risk_thresholds():
    assert hotspot_risk(3) == "Low"
    assert hotspot_risk(5) == "Medium"
    assert hotspot_risk(10) == "High"
    assert hotspot_risk(4, high_threshold=6, medium_threshold=4) == "Medium"


@pytest.mark.parametrize("role, prefix", [("Admin", "ADM"), ("Analyst", "ANL"), ("Public", "PUB")])
def test_generate_user_id_prefixes(role, prefix):
    assert re.fullmatch(prefix + r"\d{4}", generate_user_id(role))


def test_password_hashing():
    hashed = hash_password("hunter2-long", rounds=4)

    assert check_password("hunter2-long", hashed)
    assert not check_password("wrong", hashed)
    assert not check_password("hunter2-long", "plain-text-value")


def test_clean_text_strips_markup_and_truncates():
    assert clean_text("<b>Bag</b> stolen <i>today</i>") == "Bag stolen today"
    assert clean_text("abcdef", max_length=3) == "abc"
    assert clean_text(None) is None
    assert clean_text("Theft & <b>Burglary</b>") == "Theft & Burglary"
    assert clean_text("a & b", max_length=3) == "a &"


def test_case_number_and_origins():
    assert case_number("RPT", 42) == "RPT-00042"
    assert case_number("CR", 12) == "CR-00012"
    assert parse_origins("http://a.test/, http://b.test") == {"http://a.test", "http://b.test"}
