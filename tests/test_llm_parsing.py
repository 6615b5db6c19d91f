import unittest

from study_aid import llm_parsing


class JsonSpanTest(unittest.TestCase):
    def test_balanced_span_ignores_braces_in_strings(self):
        text = 'Sure! {"a": "}{", "b": {"c": 1}} and more text'
        self.assertEqual(llm_parsing.find_json_object(text), '{"a": "}{", "b": {"c": 1}}')

    def test_no_object(self):
        self.assertIsNone(llm_parsing.find_json_object("plain prose"))
        self.assertIsNone(llm_parsing.load_json_object("plain prose"))

    def test_code_fences_are_stripped(self):
        parsed = llm_parsing.load_json_object('```json\n{"summary": "x"}\n```')
        self.assertEqual(parsed, {"summary": "x"})


class AnalysisParsingTest(unittest.TestCase):
    def test_strict_parse_fills_missing_fields(self):
        analysis = llm_parsing.parse_analysis_strict('{"summary": "Volcanoes erupt.", "keyPoints": ["Magma rises"]}')
        self.assertEqual(analysis.summary, "Volcanoes erupt.")
        self.assertEqual(analysis.key_points, ["Magma rises"])
        self.assertEqual(analysis.explanation, llm_parsing.DEFAULT_EXPLANATION)
        self.assertEqual(analysis.concepts, llm_parsing.DEFAULT_CONCEPTS)
        self.assertEqual(analysis.search_keywords, llm_parsing.DEFAULT_SEARCH_KEYWORDS)

    def test_strict_parse_rejects_broken_json(self):
        self.assertIsNone(llm_parsing.parse_analysis_strict('{"summary": "cut off'))

    def test_scrape_recovers_fields_from_broken_json(self):
        text = 'Here you go: "summary": "Cells divide", "keyPoints": ["Prophase", "Anaphase"] and then it stops {'
        analysis = llm_parsing.scrape_analysis(text)
        self.assertEqual(analysis.summary, "Cells divide")
        self.assertEqual(analysis.key_points, ["Prophase", "Anaphase"])
        self.assertEqual(analysis.concepts, ["Study Material", "Educational Content"])

    def test_scrape_without_any_field(self):
        self.assertIsNone(llm_parsing.scrape_analysis("I could not analyse that."))

    def test_fallback_summary_counts_words_and_quotes_first_sentences(self):
        analysis = llm_parsing.fallback_analysis("Photosynthesis converts light into energy.", "explain photosynthesis")
        self.assertEqual(
            analysis.summary,
            "This document contains approximately 5 words. Photosynthesis converts light into energy.",
        )
        self.assertIn("explain photosynthesis", analysis.explanation)
        self.assertIn("Document contains 5 words", analysis.key_points)

    def test_fallback_keeps_only_three_sentences(self):
        analysis = llm_parsing.fallback_analysis("One. Two! Three? Four.", "count")
        self.assertTrue(analysis.summary.endswith("One. Two. Three."))


class QuizParsingTest(unittest.TestCase):
    def test_strict_parse_drops_malformed_questions(self):
        text = """{"questions": [
            {"type": "mcq", "question": "2+2?", "options": ["4", "5"], "correctAnswer": "4"},
            {"type": "essay", "question": "Discuss", "correctAnswer": "..."},
            {"type": "flashcard", "question": "Term"}
        ]}"""
        questions = llm_parsing.parse_quiz_strict(text)
        self.assertEqual(len(questions), 1)
        self.assertEqual(questions[0].correct_answer, "4")
        self.assertEqual(questions[0].explanation, "No explanation provided")

    def test_strict_parse_needs_questions_array(self):
        self.assertIsNone(llm_parsing.parse_quiz_strict('{"items": []}'))

    def test_scrape_salvages_complete_questions_from_truncated_output(self):
        text = ('{"questions": [{"type": "flashcard", "question": "Lava", "correctAnswer": "Molten rock"}, '
                '{"type": "mcq", "question": "Which')
        self.assertIsNone(llm_parsing.parse_quiz_strict(text))
        questions = llm_parsing.scrape_quiz(text)
        self.assertEqual(len(questions), 1)
        self.assertEqual(questions[0].question, "Lava")

    def test_fallback_quiz_mentions_prompt(self):
        questions = llm_parsing.fallback_quiz("explain cells")
        self.assertEqual([q.type for q in questions], ["short_answer", "flashcard", "mcq"])
        self.assertEqual(questions[2].correct_answer, "explain cells")
        self.assertIn("explain cells", questions[2].options)


if __name__ == "__main__":
    unittest.main()
