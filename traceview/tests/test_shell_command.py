import unittest

from traceview.parsers.literal import EXTENDED_PROFILE, PYTHON_PROFILE
from traceview.parsers.shell_command import extract_shell_command


class ShellCommandExtractorTests(unittest.TestCase):
    def test_full_post_request(self) -> None:
        record = extract_shell_command(
            "curl -X POST https://api.test/x -H 'Content-Type: application/json' -d '{\"a\":1}'",
            EXTENDED_PROFILE,
        )
        self.assertIsNotNone(record)
        assert record is not None
        self.assertEqual(record.type_name, "curl")
        self.assertEqual(record.positional, [])
        self.assertEqual(record.fields["method"], "POST")
        self.assertEqual(record.fields["url"], "https://api.test/x")
        self.assertEqual(record.fields["headers"], {"Content-Type": "application/json"})
        self.assertEqual(record.fields["body"], {"a": 1})

    def test_non_curl_lines_do_not_match(self) -> None:
        for line in ["curly braces", "echo curl https://x.test", "curl", "CURL https://x.test"]:
            with self.subTest(line=line):
                self.assertIsNone(extract_shell_command(line, PYTHON_PROFILE))

    def test_fields_are_found_in_any_order(self) -> None:
        record = extract_shell_command(
            "curl 'https://a.test/v1/chat' -H \"Authorization: Bearer abc:def\" -X GET",
            PYTHON_PROFILE,
        )
        assert record is not None
        self.assertEqual(record.fields["url"], "https://a.test/v1/chat")
        self.assertEqual(record.fields["method"], "GET")
        self.assertEqual(record.fields["headers"], {"Authorization": "Bearer abc:def"})
        self.assertNotIn("body", record.fields)

    def test_headers_inside_body_are_ignored(self) -> None:
        record = extract_shell_command(
            "curl https://x.test/a -H 'Accept: */*' -d 'note -H \"X-Fake: 1\"'",
            PYTHON_PROFILE,
        )
        assert record is not None
        self.assertEqual(record.fields["headers"], {"Accept": "*/*"})
        self.assertEqual(record.fields["body"], 'note -H "X-Fake: 1"')

    def test_headers_without_colon_are_skipped(self) -> None:
        record = extract_shell_command("curl https://x.test -H 'novalue'", PYTHON_PROFILE)
        assert record is not None
        self.assertNotIn("headers", record.fields)

    def test_body_uses_literal_grammar_when_not_json(self) -> None:
        record = extract_shell_command("curl https://x.test -d \"{'a': [1, None]}\"", PYTHON_PROFILE)
        assert record is not None
        self.assertEqual(record.fields["body"], {"a": [1, None]})

    def test_bare_command_has_no_fields(self) -> None:
        record = extract_shell_command("curl -s localhost:8080", PYTHON_PROFILE)
        assert record is not None
        self.assertEqual(record.fields, {})


if __name__ == "__main__":
    unittest.main()
