"""Tests for bimbus/generation/summarizer.py.

Covers the length tier function, paragraph trimming, and the summary
pass against a mocked LLM.
"""

import os
import sys
import unittest
from unittest.mock import MagicMock, patch

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from bimbus.generation.accumulator import Accumulator
from bimbus.generation.llm import CompletionError
from bimbus.generation.summarizer import (
    SECTIONS,
    TIER_PARAGRAPHS,
    count_paragraphs,
    iter_summaries,
    length_tier,
    summarize,
    trim_leading_paragraph,
)

THREE_PARAS = "This section describes the code.\n\nSecond paragraph.\n\nThird paragraph."


# ── Helpers ─────────────────────────────────────────────────────────


def _mock_llm(response_text: str = "Summary text.") -> MagicMock:
    llm = MagicMock()
    msg = MagicMock()
    msg.content = response_text
    llm.invoke.return_value = msg
    return llm


def _filled_accumulator(lines_per_perspective: int = 5) -> Accumulator:
    acc = Accumulator()
    for tag in acc.tags:
        acc.append(tag, "\n".join(f"- {tag} note {i}" for i in range(lines_per_perspective)))
    return acc


def _human_prompt(call) -> str:
    messages = call[0][0]
    return messages[-1][1]


class TestLengthTier(unittest.TestCase):

    def test_boundaries(self):
        self.assertEqual(length_tier(0), "short")
        self.assertEqual(length_tier(30), "short")
        self.assertEqual(length_tier(31), "medium")
        self.assertEqual(length_tier(50), "medium")
        self.assertEqual(length_tier(51), "long")

    def test_every_tier_has_an_instruction(self):
        for n in (1, 40, 500):
            self.assertIn(length_tier(n), TIER_PARAGRAPHS)


class TestParagraphs(unittest.TestCase):

    def test_count_paragraphs(self):
        self.assertEqual(count_paragraphs(THREE_PARAS), 3)
        self.assertEqual(count_paragraphs("one"), 1)
        self.assertEqual(count_paragraphs(""), 0)

    def test_whitespace_only_separator_counts(self):
        self.assertEqual(count_paragraphs("a\n   \nb"), 2)

    def test_three_paragraphs_drop_first(self):
        self.assertEqual(
            trim_leading_paragraph(THREE_PARAS), "Second paragraph.\n\nThird paragraph."
        )

    def test_two_paragraphs_untouched(self):
        text = "First.\n\nSecond."
        self.assertEqual(trim_leading_paragraph(text), text)

    def test_multiline_first_paragraph_dropped_whole(self):
        text = "Intro line one\nintro line two\n\n\nB\n\nC"
        self.assertEqual(trim_leading_paragraph(text), "B\n\nC")

    def test_custom_threshold(self):
        self.assertEqual(trim_leading_paragraph(THREE_PARAS, threshold=3), THREE_PARAS)
        self.assertEqual(trim_leading_paragraph("A\n\nB", threshold=1), "B")


class TestSummarize(unittest.TestCase):

    def test_sections_in_declared_order(self):
        result = summarize(_mock_llm(), _filled_accumulator(), "main.py")
        self.assertEqual(list(result), [name for name, _ in SECTIONS])
        self.assertEqual(list(result), ["Introduction", "Summary", "Technical Details"])

    def test_one_request_per_section(self):
        llm = _mock_llm()
        summarize(llm, _filled_accumulator(), "main.py")
        self.assertEqual(llm.invoke.call_count, len(SECTIONS))

    def test_prompt_uses_matching_perspective_notes(self):
        llm = _mock_llm()
        summarize(llm, _filled_accumulator(), "main.py")
        prompts = [_human_prompt(c) for c in llm.invoke.call_args_list]
        self.assertIn("- purpose note 0", prompts[0])
        self.assertIn("- plain note 0", prompts[1])
        self.assertIn("- technical note 0", prompts[2])
        self.assertNotIn("- plain note 0", prompts[0])

    def test_tier_follows_line_count(self):
        llm = _mock_llm()
        summarize(llm, _filled_accumulator(60), "main.py")
        self.assertIn(TIER_PARAGRAPHS["long"], _human_prompt(llm.invoke.call_args_list[0]))

    def test_line_cap_applied(self):
        llm = _mock_llm()
        summarize(llm, _filled_accumulator(60), "main.py", line_cap=10)
        prompt = _human_prompt(llm.invoke.call_args_list[0])
        self.assertIn("- purpose note 9", prompt)
        self.assertNotIn("- purpose note 10", prompt)
        self.assertIn(TIER_PARAGRAPHS["short"], prompt)

    def test_trimming_only_for_designated_sections(self):
        result = summarize(_mock_llm(THREE_PARAS), _filled_accumulator(), "main.py")
        self.assertEqual(result["Introduction"], THREE_PARAS)
        self.assertEqual(result["Summary"], "Second paragraph.\n\nThird paragraph.")
        self.assertEqual(result["Technical Details"], "Second paragraph.\n\nThird paragraph.")

    @patch("bimbus.generation.summarizer.time.sleep")
    def test_request_delay(self, mock_sleep):
        summarize(_mock_llm(), _filled_accumulator(), "main.py", request_delay=2)
        self.assertEqual(mock_sleep.call_count, len(SECTIONS))

    def test_iter_summaries_is_lazy(self):
        llm = _mock_llm()
        gen = iter_summaries(llm, _filled_accumulator(), "main.py")
        name, _ = next(gen)
        self.assertEqual(name, "Introduction")
        self.assertEqual(llm.invoke.call_count, 1)

    def test_completion_error_propagates(self):
        llm = MagicMock()
        llm.invoke.side_effect = Exception("down")
        with self.assertRaises(CompletionError):
            summarize(llm, _filled_accumulator(), "main.py", retries=1)
        self.assertEqual(llm.invoke.call_count, 2)


if __name__ == "__main__":
    unittest.main()
