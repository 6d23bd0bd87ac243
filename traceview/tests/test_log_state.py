import tempfile
import unittest
from pathlib import Path

from traceview.log_state import USAGE_HINT, LogStore, load_log_from_file
from traceview.parsers.lines import LineKind
from traceview.parsers.literal import PYTHON_PROFILE


class LoadLogTests(unittest.TestCase):
    def _write(self, text: str, name: str = "trace.log") -> Path:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        path = Path(tmpdir.name) / name
        path.write_text(text, encoding="utf-8")
        return path

    def test_no_path_returns_usage_hint(self) -> None:
        state = load_log_from_file(None)
        self.assertEqual(state.text, "")
        self.assertEqual(state.status, USAGE_HINT)

    def test_missing_file(self) -> None:
        state = load_log_from_file("/definitely/not/here.log")
        self.assertEqual(state.status, "File not found: /definitely/not/here.log")
        self.assertEqual(state.path, "/definitely/not/here.log")

    def test_basic_mode_counts_lines(self) -> None:
        path = self._write("a=1\r\nb=2\n")
        state = load_log_from_file(path)
        self.assertEqual(state.text, "a=1\r\nb=2\n")
        self.assertEqual(state.status, f"Loaded 3 lines from {path}")

    def test_litellm_mode_reassembles_fragments(self) -> None:
        path = self._write(
            "{'model': 'm1'}\n"
            "Delta(content='Hel')\n"
            "Delta(content='Hello')\n"
        )
        state = load_log_from_file(path, litellm=True, profile=PYTHON_PROFILE)
        self.assertEqual(state.text, "model: m1\nresponse.content: Hello")
        self.assertEqual(state.status, f"Loaded 2 LiteLLM message lines from {path}")

    def test_invalid_utf8_is_replaced_not_raised(self) -> None:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        path = Path(tmpdir.name) / "binary.log"
        path.write_bytes(b"ok=1\n\xff\xfe\n")
        state = load_log_from_file(path)
        self.assertIn("�", state.text)


class LogStoreTests(unittest.TestCase):
    def test_configure_and_classify(self) -> None:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        path = Path(tmpdir.name) / "trace.log"
        path.write_text("ping\nping\n{'a': 1}\n", encoding="utf-8")

        store = LogStore()
        state = store.configure(path, litellm=False, profile_name="python")
        self.assertIn("Loaded 4 lines", state.status)
        self.assertIs(store.profile, PYTHON_PROFILE)

        kinds = [line.kind for line in store.classified_lines()]
        self.assertEqual(kinds, [LineKind.RAW, LineKind.STRUCTURED, LineKind.EMPTY])

        path.write_text("'changed'\n", encoding="utf-8")
        self.assertIn("Loaded 2 lines", store.reload().status)


if __name__ == "__main__":
    unittest.main()
