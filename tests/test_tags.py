"""Tests for delivery tag parsing."""

from datetime import datetime

from cybake_bridge.tags import parse_tag_date, parse_tags, to_iso


def test_order_type_date_and_unclassified_location():
    info = parse_tags(["Local Delivery", "15 June 2025", "Tuesday run"])

    assert info.order_type == "Local Delivery"
    assert info.date_str == "15 June 2025"
    assert info.day_of_week == "Sunday"
    assert info.delivery_date == "2025-06-15T00:00:00.000Z"
    assert info.location == "Tuesday run"
    assert info.time_window is None


def test_time_window_is_case_insensitive():
    info = parse_tags(["9:00 am - 12:00 pm"])
    assert info.time_window == "9:00 am - 12:00 pm"


def test_time_window_wins_over_order_type():
    # Matches both the time pattern and "delivery"; time is checked first.
    info = parse_tags(["Delivery 10:00 AM - 1:00 PM"])
    assert info.time_window == "Delivery 10:00 AM - 1:00 PM"
    assert info.order_type is None


def test_system_tags_are_skipped():
    info = parse_tags(["cybake-FAILED", "Cybake-Imported", " cybake-pending ", "Brighton"])
    assert info.location == "Brighton"


def test_first_order_type_wins():
    info = parse_tags(["Store Pickup", "Local Delivery"])
    assert info.order_type == "Store Pickup"
    assert info.location is None


def test_first_unclassified_tag_becomes_location():
    info = parse_tags(["Hove", "VIP", "Wholesale"])
    assert info.location == "Hove"


def test_order_type_is_a_substring_match():
    info = parse_tags(["Free Shipping Promo"])
    assert info.order_type == "Free Shipping Promo"


def test_tags_are_trimmed():
    info = parse_tags(["  3 Jul 2025  "])
    assert info.date_str == "3 Jul 2025"
    assert info.day_of_week == "Thursday"


def test_unparseable_date_keeps_string_only():
    info = parse_tags(["15 Junuary 2025"])
    assert info.date_str == "15 Junuary 2025"
    assert info.delivery_date is None
    assert info.day_of_week is None


def test_empty_tags():
    info = parse_tags([])
    assert info.model_dump() == {
        "order_type": None,
        "date_str": None,
        "delivery_date": None,
        "day_of_week": None,
        "time_window": None,
        "location": None,
    }


def test_parse_tag_date_accepts_abbreviated_month():
    parsed = parse_tag_date("1 Sep 2025")
    assert parsed is not None
    assert (parsed.year, parsed.month, parsed.day) == (2025, 9, 1)


def test_to_iso_treats_naive_as_utc():
    assert to_iso(datetime(2025, 1, 2, 3, 4, 5, 678000)) == "2025-01-02T03:04:05.678Z"
