# study_aid/llm_integration.py
import logging
from typing import Optional, Sequence

from langchain_core.language_models import BaseChatModel
from langchain_core.output_parsers import StrOutputParser
from langchain_core.prompts import ChatPromptTemplate
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_openai import ChatOpenAI

from study_aid.config import Settings, settings as default_settings
from study_aid import llm_parsing
from study_aid.schemas import AnalysisResult, AnswerResult, QuizResult

logger = logging.getLogger(__name__)

ANALYSIS_PROMPT_TEMPLATE = """You are an expert educational AI assistant. Analyze the following text and provide a comprehensive educational response.

USER REQUEST: "{user_prompt}"

CONTENT TO ANALYZE:
"{text}"

IMPORTANT: Your response must be valid JSON format exactly as shown below. Do not include any text before or after the JSON.

{{
  "summary": "Write a clear 2-3 sentence summary of the main content that directly addresses the user's request",
  "explanation": "Provide a detailed explanation of key concepts in simple, student-friendly language. Break down complex topics into understandable parts.",
  "keyPoints": ["List 4-6 of the most important facts, concepts, or takeaways from this content", "Each point should be specific and actionable for studying", "Focus on what students need to remember"],
  "concepts": ["List the main academic concepts, topics, or subject areas covered", "Use proper academic terminology", "Include 3-5 key concepts"],
  "searchKeywords": ["Provide 4-5 specific keywords that would help find educational videos about this topic", "Use terms that teachers and educators would search for", "Include both general and specific terms"]
}}

Ensure your JSON is properly formatted and complete. Focus on educational value and student comprehension.
"""

QUIZ_PROMPT_TEMPLATE = """You are an expert educational quiz creator. Generate high-quality quiz questions based on the provided content.

USER REQUEST: "{user_prompt}"

STUDY CONTENT:
"{text}"

Create a variety of quiz questions that test different aspects of understanding. Your response must be valid JSON format exactly as shown below:

{{
  "questions": [
    {{
      "type": "mcq",
      "question": "Clear, specific multiple choice question that tests understanding",
      "options": ["Correct answer", "Plausible distractor", "Another distractor", "Final distractor"],
      "correctAnswer": "Correct answer",
      "explanation": "Brief explanation of why this answer is correct and why others are wrong"
    }},
    {{
      "type": "short_answer",
      "question": "Open-ended question that requires explanation or analysis",
      "correctAnswer": "Expected comprehensive answer based on the content",
      "explanation": "Additional context or guidance for the answer"
    }},
    {{
      "type": "flashcard",
      "question": "Key term, concept, or question for front of flashcard",
      "correctAnswer": "Definition, explanation, or answer for back of flashcard",
      "explanation": "Why this concept is important to remember"
    }}
  ]
}}

REQUIREMENTS:
- Generate 6-8 questions total with a good mix of types (2-3 MCQ, 2-3 short answer, 2-3 flashcards)
- Questions should test different cognitive levels (recall, understanding, application)
- Make MCQ distractors plausible but clearly wrong
- Ensure all questions are directly answerable from the provided content
- Focus on the most important concepts for student learning

Your response must be valid JSON only, no additional text.
"""

CHAT_PROMPT_TEMPLATE = """You are a helpful AI tutor specialized in explaining study materials. Your role is to help students understand their uploaded content better.

DOCUMENT CONTENT:
"{document_content}"
{history}
STUDENT QUESTION: "{question}"

INSTRUCTIONS:
- Answer based ONLY on the provided document content
- If the question cannot be answered from the document, politely explain this limitation
- Provide clear, educational explanations appropriate for a student
- Use examples from the document when possible
- If asked about topics not in the document, redirect to what you can help with
- Keep responses focused and helpful for learning
- Be encouraging and supportive in your teaching style

Provide your response now:
"""

NOT_CONFIGURED_ANSWER = (
    "I apologize, but the AI analysis service is not currently configured. "
    "Please set up the GEMINI_API_KEY environment variable to enable AI-powered chat functionality."
)
PROVIDER_ERROR_ANSWER = (
    "I'm sorry, I'm having trouble processing your question right now. "
    "Please try again or rephrase your question."
)


def get_llm(config: Settings = None) -> BaseChatModel:
    """Initializes and returns the appropriate LLM based on configuration."""
    config = config or default_settings
    if config.LLM_PROVIDER == "openai":
        if not config.OPENAI_API_KEY:
            raise ValueError("OPENAI_API_KEY not set in .env")
        return ChatOpenAI(api_key=config.OPENAI_API_KEY, model=config.OPENAI_MODEL, temperature=config.LLM_TEMPERATURE)
    elif config.LLM_PROVIDER == "gemini":
        if not config.GEMINI_API_KEY:
            raise ValueError("GEMINI_API_KEY not set in .env")
        return ChatGoogleGenerativeAI(
            google_api_key=config.GEMINI_API_KEY,
            model=config.LLM_MODEL,
            temperature=config.LLM_TEMPERATURE,
            top_k=40,
            top_p=0.95,
            max_output_tokens=2048,
        )
    else:
        raise ValueError(f"Unsupported LLM provider: {config.LLM_PROVIDER}")


def format_history(history: Sequence, window: int) -> str:
    """Renders the last ``window`` turns as ``ROLE: content`` lines."""
    if not history or window <= 0:
        return ""
    lines = ["", "PREVIOUS CONVERSATION:"]
    for message in list(history)[-window:]:
        role = message["role"] if isinstance(message, dict) else message.role
        content = message["content"] if isinstance(message, dict) else message.content
        lines.append(f"{role.upper()}: {content}")
    return "\n".join(lines) + "\n\n"


class StudyAssistant:
    """AI-analysis adapter: content analysis, quiz generation and tutoring chat.

    Every public method reports ``success=True``; provider failures are
    logged and replaced by degraded content tagged through ``quality``.
    """

    def __init__(self, llm: Optional[BaseChatModel] = None, config: Settings = None):
        config = config or default_settings
        self.prompt_window = config.CHAT_PROMPT_WINDOW
        self.llm = llm
        if self.llm is None:
            try:
                self.llm = get_llm(config)
                logger.info(f"LLM initialized successfully ({config.LLM_PROVIDER})")
            except Exception as e:
                logger.error(f"LLM initialization error: {e}")
                self.llm = None
        self.is_configured = self.llm is not None

    def _run(self, template: str, variables: dict) -> str:
        prompt = ChatPromptTemplate.from_template(template)
        chain = (
            prompt
            | self.llm
            | StrOutputParser()
        )
        return chain.invoke(variables)

    def analyze(self, text: str, user_prompt: str) -> AnalysisResult:
        if not self.is_configured:
            logger.warning("LLM not configured, using fallback analysis")
            return AnalysisResult(analysis=llm_parsing.fallback_analysis(text, user_prompt), quality="fallback")

        try:
            response = self._run(ANALYSIS_PROMPT_TEMPLATE, {"text": text, "user_prompt": user_prompt})
        except Exception as e:
            logger.error(f"LLM analysis error: {e}")
            logger.warning("Falling back to basic analysis")
            return AnalysisResult(analysis=llm_parsing.fallback_analysis(text, user_prompt), quality="fallback")

        analysis = llm_parsing.parse_analysis_strict(response)
        if analysis is not None:
            return AnalysisResult(analysis=analysis, quality="full")

        logger.warning(f"Analysis response was not valid JSON: {response[:200]}...")
        analysis = llm_parsing.scrape_analysis(response)
        if analysis is not None:
            return AnalysisResult(analysis=analysis, quality="partial")

        return AnalysisResult(analysis=llm_parsing.fallback_analysis(text, user_prompt), quality="fallback")

    def generate_quiz(self, text: str, user_prompt: str) -> QuizResult:
        if not self.is_configured:
            logger.warning("LLM not configured, using fallback quiz")
            return QuizResult(questions=llm_parsing.fallback_quiz(user_prompt), quality="fallback")

        try:
            response = self._run(QUIZ_PROMPT_TEMPLATE, {"text": text, "user_prompt": user_prompt})
        except Exception as e:
            logger.error(f"Quiz generation error: {e}")
            logger.warning("Falling back to basic quiz questions")
            return QuizResult(questions=llm_parsing.fallback_quiz(user_prompt), quality="fallback")

        questions = llm_parsing.parse_quiz_strict(response)
        if questions is not None:
            return QuizResult(questions=questions, quality="full")

        logger.warning(f"Quiz response was not valid JSON: {response[:200]}...")
        questions = llm_parsing.scrape_quiz(response)
        if questions is not None:
            return QuizResult(questions=questions, quality="partial")

        return QuizResult(questions=llm_parsing.fallback_quiz(user_prompt), quality="fallback")

    def answer_question(self, question: str, document_content: str, history: Sequence = ()) -> AnswerResult:
        if not self.is_configured:
            return AnswerResult(answer=NOT_CONFIGURED_ANSWER, quality="fallback")

        try:
            answer = self._run(CHAT_PROMPT_TEMPLATE, {
                "document_content": document_content,
                "history": format_history(history, self.prompt_window),
                "question": question,
            })
        except Exception as e:
            logger.error(f"Chat response error: {e}")
            return AnswerResult(answer=PROVIDER_ERROR_ANSWER, quality="fallback")

        return AnswerResult(answer=answer.strip(), quality="full")
