"""
Deterministic location classifier.

Maps a free-text location string to ``{city, country, region, is_global}``
using two static tables: an ordered alias table (codes and spellings to a
canonical country name) and a country-to-region table. Matching is done
right-to-left over tokens, then by substring, then by a short list of
ambiguous-code rules, in that order.
"""
import re
from typing import Dict, List, Optional, Tuple

from creator_discovery.models.creator import REGIONS, ParsedLocation

MAX_LOCATION_LENGTH = 100
NON_LOCATION_PHRASES: Tuple[str, ...] = ("based on", "analysis")
GLOBAL_PHRASES: Tuple[str, ...] = ("global", "worldwide", "international")

# Order matters for the substring pass: first hit wins.
COUNTRY_ALIASES: Tuple[Tuple[str, str], ...] = (
    ("us", "United States"),
    ("usa", "United States"),
    ("united states", "United States"),
    ("united states of america", "United States"),
    ("ca usa", "United States"),
    ("pittsburgh usa", "United States"),
    ("raleigh durham us", "United States"),
    ("ph", "Philippines"),
    ("philippines", "Philippines"),
    ("uk", "United Kingdom"),
    ("united kingdom", "United Kingdom"),
    ("gb", "United Kingdom"),
    ("great britain", "United Kingdom"),
    ("england", "United Kingdom"),
    ("ca", "Canada"),
    ("canada", "Canada"),
    ("au", "Australia"),
    ("australia", "Australia"),
    ("de", "Germany"),
    ("germany", "Germany"),
    ("deutschland", "Germany"),
    ("fr", "France"),
    ("france", "France"),
    ("es", "Spain"),
    ("spain", "Spain"),
    ("espana", "Spain"),
    ("it", "Italy"),
    ("italy", "Italy"),
    ("italia", "Italy"),
    ("nl", "Netherlands"),
    ("netherlands", "Netherlands"),
    ("holland", "Netherlands"),
    ("se", "Sweden"),
    ("sweden", "Sweden"),
    ("no", "Norway"),
    ("norway", "Norway"),
    ("dk", "Denmark"),
    ("denmark", "Denmark"),
    ("fi", "Finland"),
    ("finland", "Finland"),
    ("pl", "Poland"),
    ("poland", "Poland"),
    ("cz", "Czech Republic"),
    ("czech republic", "Czech Republic"),
    ("czechia", "Czech Republic"),
    ("at", "Austria"),
    ("austria", "Austria"),
    ("ch", "Switzerland"),
    ("switzerland", "Switzerland"),
    ("be", "Belgium"),
    ("belgium", "Belgium"),
    ("pt", "Portugal"),
    ("portugal", "Portugal"),
    ("ie", "Ireland"),
    ("ireland", "Ireland"),
    ("by", "Belarus"),
    ("belarus", "Belarus"),
    ("jp", "Japan"),
    ("japan", "Japan"),
    ("kr", "South Korea"),
    ("south korea", "South Korea"),
    ("korea", "South Korea"),
    ("sg", "Singapore"),
    ("singapore", "Singapore"),
    ("in", "India"),
    ("india", "India"),
    ("cn", "China"),
    ("china", "China"),
    ("sa", "Saudi Arabia"),
    ("saudi arabia", "Saudi Arabia"),
    ("saudi", "Saudi Arabia"),
    ("ae", "UAE"),
    ("uae", "UAE"),
    ("united arab emirates", "UAE"),
    ("qa", "Qatar"),
    ("qatar", "Qatar"),
    ("kw", "Kuwait"),
    ("kuwait", "Kuwait"),
    ("bh", "Bahrain"),
    ("bahrain", "Bahrain"),
    ("om", "Oman"),
    ("oman", "Oman"),
    ("jo", "Jordan"),
    ("jordan", "Jordan"),
    ("lb", "Lebanon"),
    ("lebanon", "Lebanon"),
    ("il", "Israel"),
    ("israel", "Israel"),
    ("tr", "Turkey"),
    ("turkey", "Turkey"),
    ("türkiye", "Turkey"),
    ("ir", "Iran"),
    ("iran", "Iran"),
    ("iq", "Iraq"),
    ("iraq", "Iraq"),
    ("eg", "Egypt"),
    ("egypt", "Egypt"),
    ("br", "Brazil"),
    ("brazil", "Brazil"),
    ("mx", "Mexico"),
    ("mexico", "Mexico"),
    ("ar", "Argentina"),
    ("argentina", "Argentina"),
    ("ru", "Russia"),
    ("russia", "Russia"),
    ("nz", "New Zealand"),
    ("new zealand", "New Zealand"),
    ("global", "Global"),
    ("worldwide", "Global"),
    ("international", "Global"),
)

ALIAS_LOOKUP: Dict[str, str] = {alias: country for alias, country in COUNTRY_ALIASES}
MAX_ALIAS_TOKENS = max(len(alias.split()) for alias, _ in COUNTRY_ALIASES)
UNKNOWN_COUNTRY = "Unknown"

# Last-resort substring rules for short codes, checked in order.
AMBIGUOUS_CODE_RULES: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("us", "usa"), "United States"),
    (("uk", "england"), "United Kingdom"),
    (("ph", "philippines"), "Philippines"),
    (("jp", "japan"), "Japan"),
    (("kr", "korea"), "South Korea"),
    (("sg", "singapore"), "Singapore"),
    (("in", "india"), "India"),
    (("cn", "china"), "China"),
    (("sa", "saudi"), "Saudi Arabia"),
    (("ae", "uae"), "UAE"),
    (("qa", "qatar"), "Qatar"),
    (("kw", "kuwait"), "Kuwait"),
    (("bh", "bahrain"), "Bahrain"),
    (("om", "oman"), "Oman"),
    (("jo", "jordan"), "Jordan"),
    (("lb", "lebanon"), "Lebanon"),
    (("il", "israel"), "Israel"),
    (("tr", "turkey"), "Turkey"),
    (("ir", "iran"), "Iran"),
    (("iq", "iraq"), "Iraq"),
    (("eg", "egypt"), "Egypt"),
)

REGION_BY_COUNTRY: Dict[str, str] = {
    "United States": "United States",
    "United Kingdom": "Europe",
    "Germany": "Europe",
    "France": "Europe",
    "Spain": "Europe",
    "Italy": "Europe",
    "Netherlands": "Europe",
    "Sweden": "Europe",
    "Norway": "Europe",
    "Denmark": "Europe",
    "Finland": "Europe",
    "Poland": "Europe",
    "Czech Republic": "Europe",
    "Austria": "Europe",
    "Switzerland": "Europe",
    "Belgium": "Europe",
    "Portugal": "Europe",
    "Ireland": "Europe",
    "Belarus": "Europe",
    "Japan": "Asia",
    "South Korea": "Asia",
    "Singapore": "Asia",
    "India": "Asia",
    "China": "Asia",
    "Philippines": "Asia",
    "Saudi Arabia": "Middle East",
    "UAE": "Middle East",
    "Qatar": "Middle East",
    "Kuwait": "Middle East",
    "Bahrain": "Middle East",
    "Oman": "Middle East",
    "Jordan": "Middle East",
    "Lebanon": "Middle East",
    "Israel": "Middle East",
    "Turkey": "Middle East",
    "Iran": "Middle East",
    "Iraq": "Middle East",
    "Egypt": "Middle East",
}

_TOKEN_SPLIT = re.compile(r"[,\s]+")
_WORD_START = re.compile(r"\b\w")


def _title_case(text: str) -> str:
    return _WORD_START.sub(lambda match: match.group(0).upper(), text)


def region_for_country(country: str) -> str:
    """Region bucket for a canonical country name; unknown countries are Global."""
    return REGION_BY_COUNTRY.get(country, "Global")


def normalize_country(country: str) -> str:
    """Canonical country name for an alias, or the input unchanged."""
    return ALIAS_LOOKUP.get((country or "").strip().lower(), country)


def available_regions() -> List[str]:
    return list(REGIONS)


def _unknown() -> ParsedLocation:
    return ParsedLocation(city=None, country=UNKNOWN_COUNTRY, region="Global", is_global=False)


def _global() -> ParsedLocation:
    return ParsedLocation(city=None, country="Global", region="Global", is_global=True)


def _match_tokens(tokens: List[str]) -> Tuple[Optional[str], Optional[str]]:
    """Right-to-left scan; at each position the longest alias ending there wins."""
    for end in range(len(tokens), 0, -1):
        for span in range(min(MAX_ALIAS_TOKENS, end), 0, -1):
            start = end - span
            country = ALIAS_LOOKUP.get(" ".join(tokens[start:end]))
            if country:
                city = _title_case(" ".join(tokens[:start])) if start > 0 else None
                return country, city
    return None, None


def _match_substring(location: str) -> Optional[str]:
    for alias, country in COUNTRY_ALIASES:
        if alias in location or country.lower() in location:
            return country
    for needles, country in AMBIGUOUS_CODE_RULES:
        if any(needle in location for needle in needles):
            return country
    return None


def classify(raw: Optional[str]) -> ParsedLocation:
    """Classify a raw location string without any network access."""
    location = (raw or "").strip().lower()
    tokens = [token for token in _TOKEN_SPLIT.split(location) if token]
    if not tokens or location == UNKNOWN_COUNTRY.lower():
        return _unknown()

    if len(location) > MAX_LOCATION_LENGTH or any(phrase in location for phrase in NON_LOCATION_PHRASES):
        return _global()

    if any(phrase in location for phrase in GLOBAL_PHRASES):
        return _global()

    country, city = _match_tokens(tokens)
    if country is None:
        country = _match_substring(location) or "Global"

    is_global = country == "Global"
    return ParsedLocation(
        city=city,
        country=country,
        region=region_for_country(country),
        is_global=is_global,
    )


def display(parsed: ParsedLocation) -> str:
    if parsed.is_global:
        return "Global"
    if parsed.city:
        return f"{parsed.city}, {parsed.country}"
    return parsed.country


class DeterministicLocationClassifier:
    """Object wrapper so the rule-based path can be injected like the AI one."""

    def classify(self, raw: Optional[str]) -> ParsedLocation:
        return classify(raw)
