# study_aid/llm_parsing.py
"""Turns free-form model output into analysis and quiz records.

Each layer returns the same shape or ``None``:

1. ``parse_*_strict``  - fenced JSON, first balanced ``{...}`` span, ``json.loads``
2. ``scrape_*``        - regex over ``"field": "value"`` / ``"field": [...]``
3. ``fallback_*``      - deterministic stub built from the input text
"""
import json
import logging
import re
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError

from study_aid.schemas import ContentAnalysis, QuizQuestion

logger = logging.getLogger(__name__)

DEFAULT_SUMMARY = "Content analysis completed."
DEFAULT_EXPLANATION = "Analysis provided based on the uploaded content."
DEFAULT_KEY_POINTS = ["Analysis completed successfully"]
DEFAULT_CONCEPTS = ["Study material analysis"]
DEFAULT_SEARCH_KEYWORDS = ["study", "education", "learning"]

QUESTION_TYPES = ("mcq", "short_answer", "flashcard")

_FENCE_RE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text or "").strip()


def find_json_object(text: str) -> Optional[str]:
    """Returns the first balanced ``{...}`` span, ignoring braces inside strings."""
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
            elif char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return text[start:index + 1]
        # Unbalanced from this brace; try the next opening brace
        start = text.find("{", start + 1)
    return None


def load_json_object(text: str) -> Optional[dict]:
    span = find_json_object(strip_code_fences(text))
    if span is None:
        return None
    try:
        parsed = json.loads(span)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def _string_list(value) -> Optional[List[str]]:
    if not isinstance(value, list):
        return None
    items = [str(item).strip() for item in value if str(item).strip()]
    return items or None


def _text(value) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


# ---------- Analysis ----------

def parse_analysis_strict(text: str) -> Optional[ContentAnalysis]:
    parsed = load_json_object(text)
    if parsed is None:
        return None
    return ContentAnalysis(
        summary=_text(parsed.get("summary")) or DEFAULT_SUMMARY,
        explanation=_text(parsed.get("explanation")) or DEFAULT_EXPLANATION,
        key_points=_string_list(parsed.get("keyPoints")) or list(DEFAULT_KEY_POINTS),
        concepts=_string_list(parsed.get("concepts")) or list(DEFAULT_CONCEPTS),
        search_keywords=_string_list(parsed.get("searchKeywords")) or list(DEFAULT_SEARCH_KEYWORDS),
    )


def extract_section(text: str, section_name: str) -> Optional[str]:
    match = re.search(rf'"{re.escape(section_name)}"\s*:\s*"([^"]*)"', text, re.IGNORECASE)
    return match.group(1) if match else None


def extract_array_section(text: str, section_name: str) -> Optional[List[str]]:
    match = re.search(rf'"{re.escape(section_name)}"\s*:\s*\[([^\]]+)\]', text, re.IGNORECASE)
    if not match:
        return None
    items = [item.strip().strip('"').strip("'").strip() for item in match.group(1).split(",")]
    items = [item for item in items if item]
    return items or None


def scrape_analysis(text: str) -> Optional[ContentAnalysis]:
    """Field-by-field regex scrape; ``None`` when not a single field is found."""
    summary = extract_section(text, "summary")
    explanation = extract_section(text, "explanation")
    key_points = extract_array_section(text, "keyPoints")
    concepts = extract_array_section(text, "concepts")
    search_keywords = extract_array_section(text, "searchKeywords")
    if not any([summary, explanation, key_points, concepts, search_keywords]):
        return None

    return ContentAnalysis(
        summary=summary or "AI analysis completed based on your uploaded content.",
        explanation=explanation or text[:500] + "...",
        key_points=key_points or ["Content has been analyzed", "Key information extracted", "Study material processed"],
        concepts=concepts or ["Study Material", "Educational Content"],
        search_keywords=search_keywords or ["study", "education", "learning", "tutorial"],
    )


def split_sentences(text: str) -> List[str]:
    return [sentence.strip() for sentence in re.split(r"[.!?]+", text) if sentence.strip()]


def fallback_analysis(extracted_text: str, user_prompt: str) -> ContentAnalysis:
    """Stub analysis from word and sentence counts of the input text."""
    word_count = len(extracted_text.split())
    first_sentences = ". ".join(split_sentences(extracted_text)[:3]) + "."

    return ContentAnalysis(
        summary=f"This document contains approximately {word_count} words. {first_sentences}",
        explanation=(
            f"This appears to be study material related to: {user_prompt}. "
            "The content covers various topics that would benefit from AI analysis. "
            "Please configure the GEMINI_API_KEY to get detailed AI-powered analysis."
        ),
        key_points=[
            "Content extracted from uploaded image",
            f"Document contains {word_count} words",
            "AI analysis requires Gemini API configuration",
            "Manual review recommended for detailed understanding",
        ],
        concepts=["Study Material", "Content Analysis", "Educational Content"],
        search_keywords=["study", "education", "learning", "tutorial", "explanation"],
    )


# ---------- Quiz ----------

def _coerce_question(raw) -> Optional[QuizQuestion]:
    if not isinstance(raw, dict):
        return None
    if not (raw.get("type") and raw.get("question") and raw.get("correctAnswer")):
        return None
    if raw["type"] not in QUESTION_TYPES:
        return None
    options = raw.get("options")
    try:
        return QuizQuestion(
            type=raw["type"],
            question=str(raw["question"]),
            options=[str(option) for option in options] if isinstance(options, list) else None,
            correct_answer=str(raw["correctAnswer"]),
            explanation=_text(raw.get("explanation")) or "No explanation provided",
        )
    except PydanticValidationError:
        return None


def parse_quiz_strict(text: str) -> Optional[List[QuizQuestion]]:
    parsed = load_json_object(text)
    if parsed is None or not isinstance(parsed.get("questions"), list):
        return None
    questions = [_coerce_question(raw) for raw in parsed["questions"]]
    return [question for question in questions if question is not None]


def scrape_quiz(text: str) -> Optional[List[QuizQuestion]]:
    """Salvages individually well-formed question objects from broken output."""
    cleaned = strip_code_fences(text)
    questions = []
    for match in re.finditer(r'\{[^{}]*"question"[^{}]*\}', cleaned, re.DOTALL):
        try:
            raw = json.loads(match.group(0))
        except json.JSONDecodeError:
            continue
        question = _coerce_question(raw)
        if question is not None:
            questions.append(question)
    return questions or None


def fallback_quiz(user_prompt: str) -> List[QuizQuestion]:
    return [
        QuizQuestion(
            type="short_answer",
            question="What are the main topics covered in this study material?",
            correct_answer="Based on the uploaded content and the user request: " + user_prompt,
            explanation="This question helps identify key themes and concepts from the material.",
        ),
        QuizQuestion(
            type="flashcard",
            question="Key Concept Review",
            correct_answer="Review the main points from your uploaded study material",
            explanation="Use this flashcard to test your memory of important concepts.",
        ),
        QuizQuestion(
            type="mcq",
            question="What type of analysis was requested for this material?",
            options=[user_prompt, "Mathematical calculation", "Language translation", "Image editing"],
            correct_answer=user_prompt,
            explanation="This question relates to your specific request for content analysis.",
        ),
    ]
