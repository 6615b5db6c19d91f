# study_aid/youtube_service.py
import logging
import re
from typing import Iterable, List, Optional, Union
from urllib.parse import quote_plus

import requests

from study_aid.config import Settings, settings as default_settings
from study_aid.schemas import VideoInfo, VideoSearchResult

logger = logging.getLogger(__name__)

YOUTUBE_API_URL = "https://www.googleapis.com/youtube/v3"

EDUCATIONAL_QUERY_SUFFIX = "tutorial lesson education explained"
EDUCATIONAL_INDICATORS = (
    "tutorial", "lesson", "explained", "learn", "education",
    "academy", "university", "school", "course", "guide",
)
TITLE_BONUS_KEYWORDS = ("tutorial", "lesson", "explained", "learn", "how to", "guide")
CHANNEL_BONUS_MARKERS = ("academy", "education", "university", "school")
EDUCATIONAL_RESULT_LIMIT = 8

Keywords = Union[str, Iterable[str]]


def build_query(keywords: Keywords) -> str:
    if isinstance(keywords, str):
        return keywords
    return " ".join(keywords)


def first_keyword(keywords: Keywords) -> str:
    if isinstance(keywords, str):
        return keywords
    keywords = list(keywords)
    return keywords[0] if keywords else ""


def parse_duration(duration: Optional[str]) -> str:
    """ISO 8601 ``PT4M13S`` -> ``4m 13s``."""
    if not duration:
        return "Unknown"
    match = re.match(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?", duration)
    if not match:
        return "Unknown"
    parts = [f"{value}{unit}" for value, unit in zip(match.groups(), ("h", "m", "s")) if value]
    return " ".join(parts) or "Unknown"


def calculate_educational_score(video: VideoInfo) -> float:
    score = min(video.view_count / 10000, 100)

    title = video.title.lower()
    for keyword in TITLE_BONUS_KEYWORDS:
        if keyword in title:
            score += 20

    channel = video.channel_title.lower()
    if any(marker in channel for marker in CHANNEL_BONUS_MARKERS):
        score += 30

    return score


def is_educational(item: dict) -> bool:
    snippet = item.get("snippet", {})
    haystacks = [
        snippet.get("title", "").lower(),
        snippet.get("channelTitle", "").lower(),
        snippet.get("description", "").lower(),
    ]
    return any(indicator in text for indicator in EDUCATIONAL_INDICATORS for text in haystacks)


class YouTubeService:
    """Video-search adapter over the YouTube Data API v3."""

    def __init__(self, config: Settings = None, session: Optional[requests.Session] = None):
        config = config or default_settings
        self.api_key = config.YOUTUBE_API_KEY
        self.timeout = config.YOUTUBE_TIMEOUT
        self.session = session or requests.Session()
        if not self.api_key:
            logger.warning("YOUTUBE_API_KEY not set, video suggestions will use placeholders")

    def _get(self, endpoint: str, params: dict) -> dict:
        if not self.api_key:
            raise RuntimeError("YOUTUBE_API_KEY is not configured")
        response = self.session.get(
            f"{YOUTUBE_API_URL}/{endpoint}",
            params={**params, "key": self.api_key},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    def _statistics(self, video_ids: List[str], part: str = "statistics") -> dict:
        data = self._get("videos", {"part": part, "id": ",".join(video_ids)})
        return {item["id"]: item for item in data.get("items", [])}

    @staticmethod
    def _to_video(item: dict, stats: Optional[dict], description_limit: Optional[int] = None) -> VideoInfo:
        snippet = item["snippet"]
        video_id = item["id"]["videoId"]
        statistics = (stats or {}).get("statistics", {})
        content_details = (stats or {}).get("contentDetails")
        thumbnails = snippet.get("thumbnails", {})
        thumbnail = thumbnails.get("medium") or thumbnails.get("default") or {}
        description = snippet.get("description", "")
        if description_limit is not None:
            description = description[:description_limit]

        return VideoInfo(
            title=snippet.get("title", ""),
            video_id=video_id,
            channel_title=snippet.get("channelTitle", ""),
            view_count=int(statistics.get("viewCount", 0) or 0),
            like_count=int(statistics["likeCount"]) if statistics.get("likeCount") else None,
            published_at=snippet.get("publishedAt"),
            thumbnail_url=thumbnail.get("url"),
            description=description,
            duration=parse_duration(content_details.get("duration")) if content_details is not None else None,
            url=f"https://www.youtube.com/watch?v={video_id}",
            embed_url=f"https://www.youtube.com/embed/{video_id}",
        )

    def search_videos(self, keywords: Keywords, max_results: int = 10) -> VideoSearchResult:
        """Keyword search, joined with view counts and sorted by views."""
        try:
            search = self._get("search", {
                "part": "snippet",
                "q": build_query(keywords),
                "type": "video",
                "maxResults": max_results,
                "order": "relevance",
                "safeSearch": "moderate",
                "relevanceLanguage": "en",
            })
            items = search.get("items", [])
            if not items:
                return VideoSearchResult(videos=[])

            stats = self._statistics([item["id"]["videoId"] for item in items])
            videos = [self._to_video(item, stats.get(item["id"]["videoId"])) for item in items]
            videos.sort(key=lambda video: video.view_count, reverse=True)
            return VideoSearchResult(videos=videos)

        except Exception as e:
            logger.error(f"YouTube API error: {e}")
            return VideoSearchResult(
                success=False,
                videos=self.fallback_videos(keywords),
                quality="fallback",
                error="YouTube API temporarily unavailable",
            )

    def search_educational(self, keywords: Keywords, subject: str = "") -> VideoSearchResult:
        """Search biased to lessons and tutorials, ranked by educational score."""
        try:
            query = f"{build_query(keywords)} {subject} {EDUCATIONAL_QUERY_SUFFIX}".strip()
            query = re.sub(r"\s+", " ", query)
            search = self._get("search", {
                "part": "snippet",
                "q": query,
                "type": "video",
                "maxResults": 15,
                "order": "relevance",
                "safeSearch": "strict",
                "relevanceLanguage": "en",
                "videoDuration": "medium",
                "videoDefinition": "any",
            })

            items = [item for item in search.get("items", []) if is_educational(item)]
            if not items:
                return VideoSearchResult(videos=[])

            stats = self._statistics([item["id"]["videoId"] for item in items], part="statistics,contentDetails")
            videos = [
                self._to_video(item, stats.get(item["id"]["videoId"]), description_limit=150)
                for item in items
            ]
            videos.sort(key=calculate_educational_score, reverse=True)
            return VideoSearchResult(videos=videos[:EDUCATIONAL_RESULT_LIMIT])

        except Exception as e:
            logger.error(f"Educational videos search error: {e}")
            return self.search_videos(keywords, EDUCATIONAL_RESULT_LIMIT)

    @staticmethod
    def fallback_videos(keywords: Keywords) -> List[VideoInfo]:
        search_term = first_keyword(keywords)
        return [VideoInfo(
            title=f"Learn about {search_term}",
            video_id="fallback",
            channel_title="Educational Content",
            view_count=0,
            thumbnail_url="",
            description="YouTube API temporarily unavailable",
            url=f"https://www.youtube.com/results?search_query={quote_plus(search_term)}",
            embed_url="",
        )]
