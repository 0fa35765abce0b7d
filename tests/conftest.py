import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

NICHES = ("Beauty", "Fitness", "Travel")


def make_row(index: int, **overrides):
    """Raw creator row in the shape the creator table stores it."""
    row = {
        "id": f"c{index:03d}",
        "display_name": f"Creator {index}",
        "handle": f"creator{index}",
        "platform": "TikTok" if index % 2 else "Instagram",
        "profile_url": "",
        "profile_image_url": f"https://cdn.example.com/avatars/{index}.jpg",
        "bio": "Making things",
        "email": f"creator{index}@example.com",
        "location": "Manila, PH",
        "location_region": "Asia",
        "primary_niche": NICHES[index % len(NICHES)],
        "secondary_niche": "Lifestyle",
        "hashtags": "#fun #daily",
        "followers_count": 1000 * index,
        "followers_change": 1.5,
        "average_views": 500 * index,
        "average_views_change": -2,
        "engagement_rate": 3.0,
        "engagement_rate_change": 0,
        "average_likes": 100,
        "average_comments": 10,
        "buzz_score": 0,
        "created_at": "2024-05-01T00:00:00Z",
    }
    row.update(overrides)
    return row


@pytest.fixture()
def rows_factory():
    def build(count: int, **overrides):
        return [make_row(index, **overrides) for index in range(1, count + 1)]

    return build


class StubResponses:
    """Stands in for ``OpenAI().responses``; replays canned outputs or raises them."""

    def __init__(self, outputs):
        self.outputs = list(outputs)
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        output = self.outputs.pop(0)
        if isinstance(output, Exception):
            raise output
        return type("Response", (), {"output_text": output})()


class StubOpenAI:
    def __init__(self, outputs):
        self.responses = StubResponses(outputs)
