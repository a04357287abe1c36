"""Track title cleanup for video search queries."""

import re

# Applied in order. Only the bracket rule removes every match.
_CLEANUP_PATTERNS = [
    (re.compile(r"\s-\s.*remaster.*", re.IGNORECASE), 1),
    (re.compile(r"\([^)]*remaster[^)]*\)", re.IGNORECASE), 1),
    (re.compile(r"\s-\s.*live.*", re.IGNORECASE), 1),
    (re.compile(r"\([^)]*\blive\b[^)]*\)", re.IGNORECASE), 1),
    (re.compile(r"\s-\s.*version.*", re.IGNORECASE), 1),
    (re.compile(r"\([^)]*version\)", re.IGNORECASE), 1),
    (re.compile(r"\s-\s\d{4}.*"), 1),
    (re.compile(r"\s-\s.*mix", re.IGNORECASE), 1),
    (re.compile(r"\[.*?\]"), 0),
]


def clean_track_title(title: str) -> str:
    """Strip remaster/live/version/year/mix annotations from a track title.

    "Bohemian Rhapsody - 2011 Remaster" -> "Bohemian Rhapsody"
    "Song (Live at Wembley) [HD]" -> "Song"

    Passes repeat until nothing changes, so stacked annotations such as
    "Song (Live) (Live)" come out the same as a single one.
    """
    while True:
        cleaned = title
        for pattern, count in _CLEANUP_PATTERNS:
            cleaned = pattern.sub("", cleaned, count=count)
        cleaned = cleaned.strip()
        if cleaned == title:
            return cleaned
        title = cleaned
