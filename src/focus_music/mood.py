"""
Mood to Spotify search query mapping.

Six canonical moods have hand-picked queries; any other label degrades to
"<label> music". Lookup is exact and case-sensitive.
"""

from __future__ import annotations

from typing import Dict

MOOD_QUERIES: Dict[str, str] = {
    "focused": "instrumental focus ambient study",
    "energetic": "upbeat electronic dance workout",
    "calm": "acoustic chill relaxing peaceful",
    "creative": "indie experimental atmospheric ambient",
    "productive": "lo-fi beats study concentration",
    "motivated": "motivational uplifting energetic",
}

def search_query_for(mood: str) -> str:
    return MOOD_QUERIES.get(mood, f"{mood} music")


def playlist_description(mood: str) -> str:
    return f"A {mood} playlist generated by Focus Music Tool"


def mood_description(mood: str) -> str:
    return f"{mood} music for enhanced focus and productivity"


__all__ = ["MOOD_QUERIES", "mood_description", "playlist_description", "search_query_for"]
