from creator_discovery.core.location import (
    available_regions,
    classify,
    display,
    normalize_country,
    region_for_country,
)


def test_city_and_country_code():
    parsed = classify("Manila, PH")
    assert parsed.city == "Manila"
    assert parsed.country == "Philippines"
    assert parsed.region == "Asia"
    assert parsed.is_global is False
    assert display(parsed) == "Manila, Philippines"


def test_multi_word_city_is_title_cased():
    parsed = classify("new york city usa")
    assert parsed.city == "New York City"
    assert parsed.country == "United States"
    assert parsed.region == "United States"


def test_middle_east_country():
    parsed = classify("Dubai, UAE")
    assert (parsed.city, parsed.country, parsed.region) == ("Dubai", "UAE", "Middle East")


def test_country_only():
    parsed = classify("Germany")
    assert parsed.city is None
    assert parsed.country == "Germany"
    assert parsed.region == "Europe"
    assert display(parsed) == "Germany"


def test_empty_location_is_unknown_but_not_global():
    for raw in (None, "", "   "):
        parsed = classify(raw)
        assert parsed.country == "Unknown"
        assert parsed.region == "Global"
        assert parsed.is_global is False


def test_global_phrases():
    for raw in ("Global", "Worldwide creator", "based internationally"):
        parsed = classify(raw)
        assert parsed.is_global is True
        assert parsed.country == "Global"
        assert display(parsed) == "Global"


def test_long_text_is_not_a_location():
    text = "Manila, PH " + "lorem ipsum " * 10
    assert len(text) > 100
    assert classify(text).is_global is True


def test_analysis_text_is_not_a_location():
    assert classify("Location based on bio analysis: Manila").country == "Global"


def test_unmatched_location_falls_back_to_global():
    parsed = classify("Zzyzx")
    assert parsed.country == "Global"
    assert parsed.region == "Global"
    assert parsed.is_global is True


def test_display_is_idempotent():
    cases = (
        "Manila, PH",
        "berlin germany",
        "Dubai, UAE",
        "Global",
        "",
        "London, UK",
        "Prague, CZ",
        "Raleigh, US",
        "Seoul, KR",
        "Auckland, NZ",
        "Rio de Janeiro, Brazil",
    )
    for raw in cases:
        first = display(classify(raw))
        assert display(classify(first)) == first


def test_country_helpers():
    assert normalize_country("uae") == "UAE"
    assert normalize_country("Narnia") == "Narnia"
    assert region_for_country("Japan") == "Asia"
    assert region_for_country("Brazil") == "Global"
    assert available_regions() == ["United States", "Europe", "Asia", "Middle East", "Global"]


def test_multi_word_country_names_match_as_one_alias():
    parsed = classify("seoul south korea")
    assert (parsed.city, parsed.country) == ("Seoul", "South Korea")

    parsed = classify("London, United Kingdom")
    assert (parsed.city, parsed.country, parsed.region) == ("London", "United Kingdom", "Europe")

    parsed = classify("Austin, United States of America")
    assert (parsed.city, parsed.country) == ("Austin", "United States")


def test_unknown_round_trips_to_itself():
    parsed = classify("Unknown")
    assert parsed.country == "Unknown"
    assert parsed.region == "Global"
    assert parsed.is_global is False
    assert display(classify(display(classify("")))) == "Unknown"
