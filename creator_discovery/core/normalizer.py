"""
Row normalizer.

Turns heterogeneous backend rows into ``Creator`` view-models. Numeric
metrics may arrive as bare numbers, numeric strings, or objects wrapping the
number (``{"avgValue": 12}``, ``{"likes": 12}``); every shape is decoded in one
place and anything unreadable becomes 0. ``normalize`` never raises.
"""
from __future__ import annotations

import json
import logging
import math
import re
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, TypeVar

from creator_discovery.core.location import classify, display
from creator_discovery.models.creator import REGIONS, Creator

logger = logging.getLogger(__name__)

T = TypeVar("T")

PLACEHOLDER_THUMBNAIL = "/images/PostThumbnail-3.svg"
CARD_THUMBNAILS = 3
EXPANDED_THUMBNAILS = 4
RECENT_POST_SLOTS = 12
SHARE_LINK_PLATFORMS = frozenset({"tiktok"})
STILL_IMAGE_HINTS: Tuple[str, ...] = (".awebp", ".webp", ".jpg", ".png")
VIDEO_HOSTS: Tuple[str, ...] = ("tiktok.com", "supabase.co")

# (creator attribute, row column, wrapper key, change column)
METRIC_FIELDS: Tuple[Tuple[str, str, str, str], ...] = (
    ("followers", "followers_count", "followers", "followers_change"),
    ("avg_views", "average_views", "views", "average_views_change"),
    ("engagement", "engagement_rate", "rate", "engagement_rate_change"),
    ("avg_likes", "average_likes", "likes", "average_likes_change"),
    ("avg_comments", "average_comments", "comments", "average_comments_change"),
)

_VIDEO_EXTENSION = re.compile(r"\.(mp4|mov)")
_HASHTAG_SPLIT = re.compile(r"[,\s]+")


def _coerce_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip().replace(",", ""))
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def decode_number(value: Any, named_key: Optional[str] = None) -> Optional[float]:
    """Decode a bare number or a wrapper object; ``None`` when nothing numeric is found."""
    if isinstance(value, Mapping):
        for key in ("avgValue", named_key, "value"):
            if key and key in value:
                number = _coerce_number(value[key])
                if number is not None:
                    return number
        return None
    return _coerce_number(value)


def decode_metric(value: Any, named_key: Optional[str] = None) -> float:
    """Finite, non-negative metric value; 0 for anything unreadable."""
    number = decode_number(value, named_key)
    if number is None:
        return 0.0
    return max(0.0, number)


def decode_change(value: Any) -> float:
    number = decode_number(value, "change")
    return number if number is not None else 0.0


def change_type(change: float) -> str:
    return "negative" if change < 0 else "positive"


def _text(value: Any) -> str:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return ""
    return str(value).strip()


def static_thumbnail(video_url: str) -> str:
    """Best still-image URL for a post video."""
    if not video_url:
        return ""
    if any(host in video_url for host in VIDEO_HOSTS):
        if any(hint in video_url for hint in STILL_IMAGE_HINTS):
            return video_url
        if ".mp4" in video_url or ".mov" in video_url:
            return _VIDEO_EXTENSION.sub("_thumbnail.jpg", video_url, count=1)
    return video_url


def _parse_post(raw_post: Any) -> Dict[str, Any]:
    if isinstance(raw_post, Mapping):
        return dict(raw_post)
    if isinstance(raw_post, str) and raw_post.strip().startswith("{"):
        try:
            parsed = json.loads(raw_post)
        except json.JSONDecodeError:
            return {}
        return parsed if isinstance(parsed, dict) else {}
    return {}


def post_thumbnail(post: Mapping[str, Any]) -> str:
    media_urls = post.get("media_urls")
    if isinstance(media_urls, list) and media_urls:
        first = _text(media_urls[0])
        if first:
            return first[:-1] if first.endswith("?") else first

    media_url = _text(post.get("media_url"))
    if media_url:
        return media_url

    return static_thumbnail(_text(post.get("video_url")))


def collect_posts(raw: Mapping[str, Any], platform: str) -> Tuple[List[str], List[str]]:
    """Thumbnail URLs and position-aligned share URLs from the recent-post slots."""
    thumbnails: List[str] = []
    share_urls: List[str] = []
    for slot in range(1, RECENT_POST_SLOTS + 1):
        post = _parse_post(raw.get(f"recent_post_{slot}"))
        if not post:
            continue
        thumbnail = post_thumbnail(post)
        if not thumbnail:
            continue
        thumbnails.append(thumbnail)
        share = ""
        if platform in SHARE_LINK_PLATFORMS:
            share = _text(post.get("share_url")) or _text(post.get("url"))
        share_urls.append(share)
    return thumbnails, share_urls


def pad(items: List[str], size: int, filler: str) -> List[str]:
    head = list(items[:size])
    return head + [filler] * (size - len(head))


def profile_url(platform: str, handle: str, stored: str = "") -> str:
    if stored:
        return stored
    if not handle:
        return ""
    if platform == "tiktok":
        return f"https://www.tiktok.com/@{handle}"
    if platform == "instagram":
        return f"https://instagram.com/{handle}"
    return f"https://{platform or 'instagram'}.com/{handle}"


def parse_hashtags(value: Any) -> List[str]:
    if isinstance(value, str):
        items = _HASHTAG_SPLIT.split(value)
    elif isinstance(value, (list, tuple)):
        items = [_text(item) for item in value]
    else:
        return []
    return [item for item in (_text(entry) for entry in items) if item]


def _guard(name: str, row_id: str, extract: Callable[[], T], default: T) -> T:
    try:
        return extract()
    except Exception as exc:  # pylint: disable=broad-except
        logger.warning("Row %s: field '%s' unreadable, using default (%s)", row_id, name, exc)
        return default


def _extract(raw: Mapping[str, Any]) -> Dict[str, Any]:
    row_id = _text(raw.get("id"))
    platform = _guard("platform", row_id, lambda: _text(raw.get("platform")).lower(), "")
    handle = _guard("handle", row_id, lambda: _text(raw.get("handle")).lstrip("@"), "")

    fields: Dict[str, Any] = {
        "id": row_id,
        "username": _guard("display_name", row_id, lambda: _text(raw.get("display_name")) or handle, handle),
        "username_tag": f"@{handle}" if handle else "",
        "bio": _guard("bio", row_id, lambda: _text(raw.get("bio")), ""),
        "profile_pic": _guard("profile_image_url", row_id, lambda: _text(raw.get("profile_image_url")), ""),
        "email": _guard("email", row_id, lambda: _text(raw.get("email")), ""),
        "hashtags": _guard("hashtags", row_id, lambda: parse_hashtags(raw.get("hashtags")), []),
    }

    def location_fields() -> Tuple[str, str]:
        raw_location = _text(raw.get("location"))
        parsed = classify(raw_location)
        stored_region = _text(raw.get("location_region"))
        region = stored_region if stored_region in REGIONS else parsed.region
        return (display(parsed) if raw_location else ""), region

    fields["location"], fields["region"] = _guard("location", row_id, location_fields, ("", "Global"))

    fields["social_media"] = _guard(
        "social_media",
        row_id,
        lambda: [
            {
                "platform": platform,
                "handle": handle,
                "url": profile_url(platform, handle, _text(raw.get("profile_url"))),
            }
        ],
        [],
    )

    def niches() -> List[Dict[str, str]]:
        entries = []
        primary = _text(raw.get("primary_niche"))
        secondary = _text(raw.get("secondary_niche"))
        if primary:
            entries.append({"name": primary, "kind": "primary"})
        if secondary:
            entries.append({"name": secondary, "kind": "secondary"})
        return entries

    fields["niches"] = _guard("niches", row_id, niches, [])

    thumbnails, share_urls = _guard("recent_posts", row_id, lambda: collect_posts(raw, platform), ([], []))
    expanded = pad(thumbnails, EXPANDED_THUMBNAILS, PLACEHOLDER_THUMBNAIL)
    fields["expanded_thumbnails"] = expanded
    fields["thumbnails"] = pad(thumbnails, CARD_THUMBNAILS, PLACEHOLDER_THUMBNAIL)
    fields["share_urls"] = pad(share_urls, CARD_THUMBNAILS, "")
    fields["expanded_share_urls"] = pad(share_urls, EXPANDED_THUMBNAILS, "")

    for attribute, column, named_key, change_column in METRIC_FIELDS:
        fields[attribute] = _guard(column, row_id, lambda c=column, k=named_key: decode_metric(raw.get(c), k), 0.0)
        change = _guard(change_column, row_id, lambda c=change_column: decode_change(raw.get(c)), 0.0)
        fields[f"{attribute}_change"] = change
        fields[f"{attribute}_change_type"] = change_type(change)

    fields["buzz_score"] = _guard("buzz_score", row_id, lambda: min(100.0, decode_metric(raw.get("buzz_score"))), 0.0)
    created_at = _text(raw.get("created_at")) or None
    fields["created_at"] = created_at
    fields["updated_at"] = _text(raw.get("updated_at")) or created_at
    return fields


def _fallback(raw: Any) -> Creator:
    row_id = ""
    if isinstance(raw, Mapping):
        row_id = _guard("id", "?", lambda: _text(raw.get("id")), "")
    return Creator(
        id=row_id,
        thumbnails=pad([], CARD_THUMBNAILS, PLACEHOLDER_THUMBNAIL),
        expanded_thumbnails=pad([], EXPANDED_THUMBNAILS, PLACEHOLDER_THUMBNAIL),
        share_urls=pad([], CARD_THUMBNAILS, ""),
        expanded_share_urls=pad([], EXPANDED_THUMBNAILS, ""),
    )


def normalize(raw: Any) -> Creator:
    """Build a Creator from one raw row; malformed input degrades to defaults."""
    if not isinstance(raw, Mapping):
        logger.warning("Skipping non-mapping row of type %s", type(raw).__name__)
        return _fallback(raw)
    try:
        return Creator(**_extract(raw))
    except Exception as exc:  # pylint: disable=broad-except
        logger.warning("Row %s could not be normalized, using defaults: %s", raw.get("id"), exc)
        return _fallback(raw)


def normalize_rows(rows: List[Any]) -> List[Creator]:
    return [normalize(row) for row in rows]
