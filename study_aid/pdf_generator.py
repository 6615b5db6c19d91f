# study_aid/pdf_generator.py
import logging
from typing import List, Optional, Tuple

import fitz  # PyMuPDF

logger = logging.getLogger(__name__)

# Writer styles mapped to PyMuPDF's bundled Noto Sans faces
REGULAR = "regular"
BOLD = "bold"
ITALIC = "italic"
FONT_CODES = {REGULAR: "notos", BOLD: "notosbo", ITALIC: "notosit"}
# Droid Sans Fallback; covers CJK and the symbols Noto Sans lacks
FALLBACK_FONT_CODE = "cjk"

PAGE_WIDTH, PAGE_HEIGHT = 612, 792 # Letter
MARGIN = 72
LINE_SPACING = 1.2
BULLET = "•"


class PDFWriter:
    """Page-oriented text writer: blocks are appended top to bottom, wrapped to
    the page width, and spill onto new pages as they run out of room.

    Each character is drawn with the current style's font when it has the
    glyph, otherwise with the fallback font.
    """

    def __init__(self, width: float = PAGE_WIDTH, height: float = PAGE_HEIGHT, margin: float = MARGIN):
        self.doc = fitz.open()
        self.width = width
        self.height = height
        self.margin = margin
        self.fonts = {style: fitz.Font(code) for style, code in FONT_CODES.items()}
        self.fallback = fitz.Font(FALLBACK_FONT_CODE)
        self.page = None
        self.writer = None
        self.y = 0.0
        self.font = REGULAR
        self.size = 12
        self._new_page()

    def _flush(self):
        if self.writer is not None:
            self.writer.write_text(self.page)
            self.writer = None

    def _new_page(self):
        self._flush()
        self.page = self.doc.new_page(width=self.width, height=self.height)
        self.writer = fitz.TextWriter(self.page.rect)
        self.y = self.margin

    @property
    def line_height(self) -> float:
        return self.size * LINE_SPACING

    def set_font(self, font: str = REGULAR, size: Optional[float] = None) -> "PDFWriter":
        self.font = font
        if size is not None:
            self.size = size
        return self

    def runs(self, text: str) -> List[Tuple[fitz.Font, str]]:
        """Splits ``text`` into maximal runs that share one font."""
        primary = self.fonts[self.font]
        runs = []
        for char in text:
            font = primary
            if not primary.has_glyph(ord(char)) and self.fallback.has_glyph(ord(char)):
                font = self.fallback
            if runs and runs[-1][0] is font:
                runs[-1] = (font, runs[-1][1] + char)
            else:
                runs.append((font, char))
        return runs

    def text_length(self, text: str) -> float:
        return sum(font.text_length(run, fontsize=self.size) for font, run in self.runs(text))

    def wrap(self, text: str, max_width: float) -> List[str]:
        """Greedy word wrap; words wider than a line are split by character."""
        lines = []
        for paragraph in str(text).split("\n"):
            current = ""
            for word in paragraph.split(" "):
                candidate = f"{current} {word}" if current else word
                if self.text_length(candidate) <= max_width:
                    current = candidate
                    continue
                if current:
                    lines.append(current)
                current = ""
                for char in word:
                    if self.text_length(current + char) > max_width and current:
                        lines.append(current)
                        current = ""
                    current += char
            lines.append(current)
        return lines

    def text(self, text: str, indent: float = 0, align: str = "left") -> "PDFWriter":
        left = self.margin + indent
        max_width = self.width - self.margin - left
        for line in self.wrap(text, max_width):
            if self.y + self.line_height > self.height - self.margin:
                self._new_page()
            x = left
            if align == "center":
                x = (self.width - self.text_length(line)) / 2
            point = fitz.Point(x, self.y + self.size)
            for font, run in self.runs(line):
                _, point = self.writer.append(point, run, font=font, fontsize=self.size)
            self.y += self.line_height
        return self

    def move_down(self, lines: float = 1) -> "PDFWriter":
        self.y += self.line_height * lines
        return self

    def to_bytes(self) -> bytes:
        try:
            self._flush()
            return self.doc.tobytes()
        finally:
            self.doc.close()


class PDFGenerator:
    """PDF-render adapter: lays out study material in one of the export modes."""

    TITLES = {
        "complete": "Study Material",
        "summary": "Study Summary",
        "quiz": "Quiz Questions",
        "notes": "Study Notes",
        "chat": "Chat History",
    }

    def generate(self, document: dict, export_type: str = "complete", chat_messages: Optional[list] = None) -> bytes:
        """Renders ``document`` (the stored record, camelCase keys) and returns PDF bytes."""
        writer = PDFWriter()
        self.add_header(writer, self.TITLES.get(export_type, self.TITLES["complete"]))

        if export_type == "chat":
            self.add_chat(writer, document, chat_messages or [])
        elif export_type == "quiz":
            self.add_content(writer, document, "quiz")
        elif export_type in ("summary", "notes"):
            self.add_content(writer, document, "summary")
        else:
            self.add_content(writer, document, "complete")

        pdf_bytes = writer.to_bytes()
        logger.info(f"Generated {export_type} PDF ({len(pdf_bytes)} bytes)")
        return pdf_bytes

    @staticmethod
    def add_header(writer: PDFWriter, title: str):
        writer.set_font(BOLD, 24).text(title, align="center").move_down(2)

    @staticmethod
    def add_section(writer: PDFWriter, label: str):
        writer.set_font(BOLD, 14).text(label)
        writer.set_font(REGULAR, 12)

    def add_bullets(self, writer: PDFWriter, label: str, items: list):
        self.add_section(writer, label)
        for item in items:
            writer.text(f"{BULLET} {item}", indent=20)
        writer.move_down(1)

    def add_content(self, writer: PDFWriter, document: dict, content_type: str = "complete"):
        writer.set_font(REGULAR, 12)
        analysis = document.get("analysis") or {}

        if content_type in ("complete", "summary"):
            if document.get("extractedText"):
                writer.text(document["extractedText"]).move_down(1.5)

            if analysis.get("summary"):
                self.add_section(writer, "Summary:")
                writer.text(analysis["summary"]).move_down(1)

            if analysis.get("keyPoints"):
                self.add_bullets(writer, "Key Points:", analysis["keyPoints"])

            if analysis.get("concepts"):
                self.add_bullets(writer, "Concepts:", analysis["concepts"])

            if content_type == "complete" and analysis.get("explanation"):
                self.add_section(writer, "Detailed Explanation:")
                writer.text(analysis["explanation"]).move_down(1)

        questions = document.get("quizQuestions") or []
        if content_type in ("complete", "quiz") and questions:
            if content_type == "complete":
                self.add_section(writer, "Quiz Questions:")
                writer.move_down(0.5)
            self.add_quiz(writer, questions)

        videos = document.get("youtubeVideos") or []
        if content_type == "complete" and videos:
            self.add_section(writer, "Recommended Videos:")
            writer.move_down(0.5)
            self.add_videos(writer, videos)

    @staticmethod
    def add_quiz(writer: PDFWriter, questions: list):
        for index, question in enumerate(questions, 1):
            writer.set_font(BOLD, 13).text(f"{index}. {question.get('question', '')}")
            writer.set_font(REGULAR, 12)

            options = question.get("options")
            if question.get("type") == "mcq" and options:
                for option_index, option in enumerate(options):
                    label = chr(65 + option_index)
                    marker = " (correct)" if option == question.get("correctAnswer") else ""
                    writer.text(f"{label}. {option}{marker}", indent=15)
            else:
                writer.text(f"Answer: {question.get('correctAnswer', '')}", indent=15)

            if question.get("explanation"):
                writer.set_font(ITALIC).text(f"Explanation: {question['explanation']}", indent=15)

            writer.set_font(REGULAR).move_down(0.8)

    @staticmethod
    def add_videos(writer: PDFWriter, videos: list, limit: int = 8):
        for index, video in enumerate(videos[:limit], 1):
            writer.set_font(BOLD, 12).text(f"{index}. {video.get('title', '')}")
            writer.set_font(REGULAR, 11)
            writer.text(f"Channel: {video.get('channelTitle', '')}", indent=15)
            writer.text(f"URL: {video.get('url', '')}", indent=15)
            writer.move_down(0.5)
        writer.set_font(REGULAR, 12)

    def add_chat(self, writer: PDFWriter, document: dict, messages: list):
        writer.set_font(BOLD, 16).text(document.get("userPrompt") or "Study Document").move_down(1)
        for message in messages:
            speaker = "You" if message.get("role") == "user" else "AI Tutor"
            stamp = f" ({message['timestamp']})" if message.get("timestamp") else ""
            writer.set_font(BOLD, 12).text(f"{speaker}{stamp}:")
            writer.set_font(REGULAR, 12).text(message.get("content", ""), indent=15).move_down(0.8)
