import unittest

from traceview.parsers.literal import EXTENDED_PROFILE, PYTHON_PROFILE, TaggedRecord
from traceview.parsers.reconcile import (
    ReconciliationState,
    collect,
    extract_candidates,
    extract_message_content,
    find_overlap,
    merge_chunk,
    reconcile,
)


class MergeChunkTests(unittest.TestCase):
    def test_identity_laws(self) -> None:
        for text in ["", "abc", "Hello world"]:
            with self.subTest(text=text):
                self.assertEqual(merge_chunk(text, ""), text)
                self.assertEqual(merge_chunk("", text), text)
                self.assertEqual(merge_chunk(text, text), text)

    def test_superset_replaces(self) -> None:
        self.assertEqual(merge_chunk("Hello", "Hello there"), "Hello there")
        self.assertEqual(merge_chunk("Hello there", "lo th"), "Hello there")

    def test_overlap_is_spliced_across_merges(self) -> None:
        merged = merge_chunk("", "Hello wor")
        merged = merge_chunk(merged, "world, how")
        merged = merge_chunk(merged, "how are you")
        self.assertEqual(merged, "Hello world, how are you")

    def test_disjoint_chunks_get_one_separator(self) -> None:
        self.assertEqual(merge_chunk("Hello", "world"), "Hello world")
        self.assertEqual(merge_chunk("Hello ", "world"), "Hello world")
        self.assertEqual(merge_chunk("Hello", "\nworld"), "Hello\nworld")

    def test_overlap_merges_never_grow_past_both_inputs(self) -> None:
        pairs = [("abcde", "cdefg"), ("aaa", "aab"), ("xyz", "xyz!"), ("one two", "two three")]
        for left, right in pairs:
            with self.subTest(left=left, right=right):
                self.assertLessEqual(len(merge_chunk(left, right)), len(left) + len(right))

    def test_find_overlap_prefers_longest(self) -> None:
        self.assertEqual(find_overlap("abab", "abab c"), 4)
        self.assertEqual(find_overlap("aaa", "aab"), 2)
        self.assertEqual(find_overlap("abc", "xyz"), 0)


class CollectorTests(unittest.TestCase):
    def test_message_content_shapes(self) -> None:
        self.assertEqual(extract_message_content("hi"), "hi")
        self.assertEqual(
            extract_message_content([{"type": "text", "text": "a"}, "b", {"content": "c"}, {"value": "d"}, 5]),
            "abcd",
        )
        self.assertEqual(extract_message_content({"other": "x"}), "")
        self.assertEqual(extract_message_content(None), "")

    def test_model_first_non_empty_wins(self) -> None:
        state = ReconciliationState()
        collect({"model": ""}, state)
        collect({"model": "gpt-4o"}, state)
        collect({"model": "other"}, state)
        self.assertEqual(state.model, "gpt-4o")

    def test_same_role_messages_merge_in_sequence(self) -> None:
        state = ReconciliationState()
        collect({"messages": [{"role": "user", "content": "Hi"}, {"role": "user", "content": "Hi there"}]}, state)
        collect({"messages": [{"content": "no role"}, {"role": "user", "content": "again"}]}, state)
        self.assertEqual(list(state.prompt_by_role), ["user", "message"])
        self.assertEqual(state.prompt_by_role["user"], "Hi there again")
        self.assertEqual(
            [(message.role, message.content) for message in state.prompt_messages],
            [("user", "Hi there"), ("message", "no role"), ("user", "again")],
        )

    def test_nested_records_feed_response_channels(self) -> None:
        state = ReconciliationState()
        value = TaggedRecord(
            "ModelResponse",
            [],
            {
                "choices": [
                    TaggedRecord("Choices", [], {"message": TaggedRecord("Message", [], {"content": "Answer"})}),
                ],
                "usage": {"reasoning_content": "Because"},
                "extra": [{"text": "side"}],
            },
        )
        collect(value, state)
        self.assertEqual(state.response_content, "Answer")
        self.assertEqual(state.response_reasoning, "Because")
        self.assertEqual(state.response_text, "side")

    def test_prompt_fields_stay_out_of_response_channels(self) -> None:
        state = ReconciliationState()
        collect({"input": "question", "messages": [{"role": "user", "content": "hi"}]}, state)
        collect({"system_prompt": "question"}, state)
        self.assertEqual(list(state.prompt_extras), ["question"])
        self.assertEqual(state.response_content, "")

    def test_candidates_include_key_value_segments(self) -> None:
        candidates = extract_candidates("request body: {'model': 'm1'}; junk", PYTHON_PROFILE)
        self.assertTrue(any(isinstance(c, dict) and c.get("request body") == {"model": "m1"} for c in candidates))

    def test_segment_value_held_by_classified_mapping_is_not_repeated(self) -> None:
        candidates = extract_candidates("request: {'model': 'm1'}", PYTHON_PROFILE)
        self.assertEqual(candidates, [{"request": {"model": "m1"}}])

    def test_keyed_request_keeps_message_sequence_single(self) -> None:
        log = (
            "request: {'messages': [{'role': 'system', 'content': 'S'},"
            " {'role': 'user', 'content': 'U'}]}"
        )
        result = reconcile(log, PYTHON_PROFILE)
        self.assertIn("prompt.sequence: system: S | user: U", result.text.split("\n"))


class ReconcileTests(unittest.TestCase):
    LOG = "\n".join(
        [
            "Raw OpenAI Chunk",
            '{"model": "gpt-4o", "messages": [{"role": "system", "content": "Be brief."},'
            ' {"role": "user", "content": [{"type": "text", "text": "Hi"}]}]}',
            "ModelResponseStream(id='c1', choices=[StreamingChoices(delta=Delta(content='Hello wor', role='assistant'))], model='gpt-4o')",
            "Raw OpenAI Chunk",
            "ModelResponseStream(id='c2', choices=[StreamingChoices(delta=Delta(content='world, how'))])",
            "ModelResponseStream(id='c3', choices=[StreamingChoices(delta=Delta(content='how are you', reasoning_content='thinking'))])",
            "",
            "prompt: Summarize this",
            "prompt: Summarize this",
        ]
    )

    def test_streaming_log_is_reassembled(self) -> None:
        result = reconcile(self.LOG, EXTENDED_PROFILE)
        self.assertEqual(
            result.text.split("\n"),
            [
                "model: gpt-4o",
                "prompt.system: Be brief.",
                "prompt.user: Hi",
                "prompt.sequence: system: Be brief. | user: Hi",
                "prompt.raw: Summarize this",
                "response.reasoning: thinking",
                "response.content: Hello world, how are you",
            ],
        )
        self.assertEqual(result.line_count, 7)

    def test_empty_log_produces_no_lines(self) -> None:
        result = reconcile("\n\nRaw OpenAI Chunk\nplain prose\n", PYTHON_PROFILE)
        self.assertEqual(result.text, "")
        self.assertEqual(result.line_count, 0)


if __name__ == "__main__":
    unittest.main()
