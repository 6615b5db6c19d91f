import unittest

from langchain_core.language_models.fake_chat_models import FakeListChatModel

from study_aid.llm_integration import (
    NOT_CONFIGURED_ANSWER,
    PROVIDER_ERROR_ANSWER,
    StudyAssistant,
    format_history,
)
from tests.fakes import ANALYSIS_JSON, QUIZ_JSON, scripted_llm, unconfigured_settings, unreachable_llm


class StudyAssistantTest(unittest.TestCase):
    def test_clean_json_is_full_quality(self):
        assistant = StudyAssistant(llm=FakeListChatModel(responses=[ANALYSIS_JSON]), config=unconfigured_settings())
        result = assistant.analyze("Mitosis text", "summarise")
        self.assertTrue(result.success)
        self.assertEqual(result.quality, "full")
        self.assertEqual(result.analysis.summary, "Cells divide through mitosis.")
        self.assertEqual(result.analysis.search_keywords, ["mitosis", "cell division"])

    def test_scraped_response_is_partial_quality(self):
        llm = FakeListChatModel(responses=['"summary": "Partly there", "concepts": ["Mitosis"'])
        result = StudyAssistant(llm=llm, config=unconfigured_settings()).analyze("text", "prompt")
        self.assertEqual(result.quality, "partial")
        self.assertEqual(result.analysis.summary, "Partly there")

    def test_unreachable_provider_falls_back(self):
        assistant = StudyAssistant(llm=unreachable_llm(), config=unconfigured_settings())
        analysis = assistant.analyze("Photosynthesis converts light into energy.", "explain photosynthesis")
        self.assertTrue(analysis.success)
        self.assertEqual(analysis.quality, "fallback")
        self.assertIn("approximately 5 words", analysis.analysis.summary)

        quiz = assistant.generate_quiz("text", "explain photosynthesis")
        self.assertEqual(quiz.quality, "fallback")
        self.assertEqual(len(quiz.questions), 3)

        answer = assistant.answer_question("Why?", "context")
        self.assertEqual(answer.answer, PROVIDER_ERROR_ANSWER)
        self.assertEqual(answer.quality, "fallback")

    def test_unconfigured_assistant(self):
        assistant = StudyAssistant(config=unconfigured_settings())
        self.assertFalse(assistant.is_configured)
        self.assertEqual(assistant.answer_question("Why?", "context").answer, NOT_CONFIGURED_ANSWER)
        self.assertEqual(assistant.analyze("Some words here.", "prompt").quality, "fallback")

    def test_quiz_generation(self):
        assistant = StudyAssistant(llm=FakeListChatModel(responses=[QUIZ_JSON]), config=unconfigured_settings())
        result = assistant.generate_quiz("Mitosis text", "quiz me")
        self.assertEqual(result.quality, "full")
        self.assertEqual([q.type for q in result.questions], ["mcq", "flashcard"])

    def test_chat_prompt_replays_last_five_turns(self):
        prompts = []
        assistant = StudyAssistant(llm=scripted_llm(prompts=prompts), config=unconfigured_settings())
        history = [
            {"role": "user" if i % 2 == 0 else "assistant", "content": f"turn {i}"}
            for i in range(7)
        ]
        answer = assistant.answer_question("What next?", "Mitosis context", history)
        self.assertEqual(answer.quality, "full")

        prompt = prompts[-1]
        self.assertIn("PREVIOUS CONVERSATION:", prompt)
        self.assertNotIn("turn 0", prompt)
        self.assertNotIn("turn 1", prompt)
        self.assertIn("USER: turn 2", prompt)
        self.assertIn("USER: turn 6", prompt)
        self.assertIn('STUDENT QUESTION: "What next?"', prompt)


class FormatHistoryTest(unittest.TestCase):
    def test_empty_history(self):
        self.assertEqual(format_history([], 5), "")

    def test_roles_are_upper_cased(self):
        text = format_history([{"role": "assistant", "content": "Hi"}], 5)
        self.assertIn("ASSISTANT: Hi", text)


if __name__ == "__main__":
    unittest.main()
