# tests/fakes.py
"""Stand-ins for the remote providers so tests run offline."""
import json
from types import SimpleNamespace

import requests
from langchain_core.runnables import RunnableLambda

from study_aid.schemas import OCRResult, VideoInfo, VideoSearchResult

ANALYSIS_JSON = json.dumps({
    "summary": "Cells divide through mitosis.",
    "explanation": "Mitosis splits one cell into two identical cells.",
    "keyPoints": ["Prophase comes first", "Chromosomes condense"],
    "concepts": ["Cell division", "Mitosis"],
    "searchKeywords": ["mitosis", "cell division"],
})

QUIZ_JSON = json.dumps({
    "questions": [
        {
            "type": "mcq",
            "question": "Which phase comes first?",
            "options": ["Prophase", "Anaphase", "Telophase", "Metaphase"],
            "correctAnswer": "Prophase",
            "explanation": "Prophase starts mitosis.",
        },
        {
            "type": "flashcard",
            "question": "Mitosis",
            "correctAnswer": "Division of one cell into two identical cells",
        },
    ]
})

CHAT_ANSWER = "Mitosis produces two identical daughter cells."


def scripted_llm(analysis=ANALYSIS_JSON, quiz=QUIZ_JSON, answer=CHAT_ANSWER, prompts=None):
    """A chat model replacement that answers by prompt kind and records every prompt."""
    def respond(prompt_value):
        text = prompt_value.to_string()
        if prompts is not None:
            prompts.append(text)
        if "Analyze the following text" in text:
            return analysis
        if "quiz creator" in text:
            return quiz
        return answer
    return RunnableLambda(respond)


def unreachable_llm():
    def fail(_):
        raise ConnectionError("provider unreachable")
    return RunnableLambda(fail)


def unconfigured_settings(**overrides):
    values = dict(
        LLM_PROVIDER="gemini",
        GEMINI_API_KEY=None,
        OPENAI_API_KEY=None,
        CHAT_PROMPT_WINDOW=5,
        GOOGLE_CLOUD_PROJECT_ID=None,
        GOOGLE_APPLICATION_CREDENTIALS=None,
        YOUTUBE_API_KEY=None,
        YOUTUBE_TIMEOUT=5,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


class FakeOCR:
    def __init__(self, text="Mitosis has four phases. Cells divide into two."):
        self.text = text
        self.calls = []

    def extract_structured_text(self, image_path):
        self.calls.append(image_path)
        return OCRResult(structured_text=self.text, confidence=0.9, quality="full")


class FakeVideos:
    def __init__(self):
        self.calls = []

    def search_educational(self, keywords, subject=""):
        self.calls.append(list(keywords))
        return VideoSearchResult(videos=[VideoInfo(
            title="Mitosis explained",
            video_id="abc123",
            channel_title="Biology Academy",
            view_count=120000,
            url="https://www.youtube.com/watch?v=abc123",
            embed_url="https://www.youtube.com/embed/abc123",
        )])


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")

    def json(self):
        return self.payload


class FakeSession:
    """Routes ``GET .../<endpoint>`` to canned payloads keyed by endpoint name."""

    def __init__(self, routes=None, status_code=200):
        self.routes = routes or {}
        self.status_code = status_code
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params))
        endpoint = url.rsplit("/", 1)[-1]
        return FakeResponse(self.routes.get(endpoint, {}), self.status_code)


def search_item(video_id, title, channel="Some Channel", description=""):
    return {
        "id": {"videoId": video_id},
        "snippet": {
            "title": title,
            "channelTitle": channel,
            "description": description,
            "publishedAt": "2023-01-01T00:00:00Z",
            "thumbnails": {"medium": {"url": f"https://img.youtube.com/{video_id}.jpg"}},
        },
    }


def stats_item(video_id, views, duration=None):
    item = {"id": video_id, "statistics": {"viewCount": str(views), "likeCount": "10"}}
    if duration:
        item["contentDetails"] = {"duration": duration}
    return item
