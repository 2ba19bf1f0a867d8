from __future__ import annotations

import io
import os
import shutil
import sys
import tempfile
import unittest
from pathlib import Path
from unittest import mock

TESTS_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = TESTS_DIR.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from PIL import Image

from dotlite import cli

SIMPLE_DOT = """
digraph G {
  a [label="Hello"];
  b [label="World"];
  a -> b;
}
""".strip()

HAS_DOT = shutil.which("dot") is not None


class _StdoutCapture:
    def __init__(self) -> None:
        self._text = io.StringIO()
        self.buffer = io.BytesIO()

    def write(self, value: str) -> int:
        return self._text.write(value)

    def flush(self) -> None:
        pass

    def get_text(self) -> str:
        return self._text.getvalue()


class _StdinStub:
    def __init__(self, data: bytes) -> None:
        self.buffer = io.BytesIO(data)


class CLIAcceptanceTests(unittest.TestCase):
    def setUp(self) -> None:
        env = mock.patch.dict(os.environ)
        env.start()
        self.addCleanup(env.stop)
        for key in ("DOT_LITE_ENGINE", "DOT_LITE_DEBUG", "TOTAL_MEMORY", "TOTAL_STACK"):
            os.environ.pop(key, None)

    def run_cli(self, argv: list[str], stdin_text: str = "") -> tuple[int, str, bytes, str]:
        stdout = _StdoutCapture()
        stderr = io.StringIO()
        stdin = _StdinStub(stdin_text.encode("utf-8"))
        with mock.patch("sys.stdout", stdout), mock.patch("sys.stderr", stderr), mock.patch("sys.stdin", stdin):
            code = cli.main(argv)
        return code, stdout.get_text(), stdout.buffer.getvalue(), stderr.getvalue()

    def write_dot(self, td: str, text: str = SIMPLE_DOT) -> Path:
        path = Path(td) / "simple.dot"
        path.write_text(text)
        return path

    def test_no_arguments_prints_usage(self) -> None:
        code, out, _data, err = self.run_cli([])
        self.assertEqual(code, 0)
        self.assertTrue(out.startswith("usage"))
        self.assertEqual(err, "")

    def test_version(self) -> None:
        code, out, _data, err = self.run_cli(["-V"])
        self.assertEqual(code, 0, err)
        self.assertTrue(out.startswith("dot - graphviz-java-cli v0.1.0 (graphviz-java v"))

    def test_version_with_lite_engine(self) -> None:
        os.environ["DOT_LITE_ENGINE"] = "lite"
        code, out, _data, err = self.run_cli(["-Tpng", "-V"])
        self.assertEqual(code, 0, err)
        self.assertTrue(out.startswith("dot - graphviz-java-cli"))

    def test_too_many_input_files(self) -> None:
        code, _out, _data, err = self.run_cli(["a", "b"])
        self.assertEqual(code, 2)
        self.assertIn("error[E_ARGS]", err)
        self.assertIn("['a', 'b']", err)

    def test_missing_input_file(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            missing = Path(td) / "missing.dot"
            code, _out, _data, err = self.run_cli(["-Tsvg", str(missing)])
            self.assertEqual(code, 2)
            self.assertIn("error[E_IO_READ]", err)
            self.assertIn(str(missing), err)

    def test_unwritable_output(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            source = self.write_dot(td)
            target = Path(td) / "no-such-dir" / "out.svg"
            code, _out, _data, err = self.run_cli(["-Tsvg", f"-o{target}", str(source)])
            self.assertEqual(code, 4)
            self.assertIn("error[E_IO_WRITE]", err)

    def test_missing_input_with_same_name_as_output(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            same = Path(td) / "graph.dot"
            code, _out, _data, err = self.run_cli(["-Tsvg", f"-o{same}", str(same)])
            self.assertEqual(code, 2)
            self.assertIn("error[E_IO_READ]", err)
            self.assertFalse(same.exists())

    def test_unexecutable_engine_is_a_render_error(self) -> None:
        error = PermissionError(13, "Permission denied", "dot")
        with mock.patch("dotlite.engines.graphviz.pipe", side_effect=error):
            code, _out, _data, err = self.run_cli(["-Tsvg"], stdin_text=SIMPLE_DOT)
        self.assertEqual(code, 3)
        self.assertIn("error[E_RENDER]: failed to execute Graphviz", err)

    def test_debug_setting_prints_traceback(self) -> None:
        os.environ["DOT_LITE_DEBUG"] = "1"
        code, _out, _data, err = self.run_cli(["a", "b"])
        self.assertEqual(code, 2)
        self.assertIn("Traceback", err)

    def test_debug_traceback_when_settings_fail(self) -> None:
        os.environ["DOT_LITE_DEBUG"] = "1"
        os.environ["DOT_LITE_ENGINE"] = "vizjs"
        code, _out, _data, err = self.run_cli(["-Tsvg"])
        self.assertEqual(code, 2)
        self.assertIn("DOT_LITE_ENGINE", err)
        self.assertIn("Traceback", err)

    def test_no_traceback_without_debug(self) -> None:
        code, _out, _data, err = self.run_cli(["a", "b"])
        self.assertEqual(code, 2)
        self.assertNotIn("Traceback", err)

    def test_lite_engine_rejects_other_formats(self) -> None:
        os.environ["DOT_LITE_ENGINE"] = "lite"
        code, _out, _data, err = self.run_cli(["-Tpng"], stdin_text=SIMPLE_DOT)
        self.assertEqual(code, 2)
        self.assertIn("only svg type is supported", err)

    def test_invalid_settings(self) -> None:
        os.environ["TOTAL_MEMORY"] = "lots"
        code, _out, _data, err = self.run_cli(["-Tsvg"], stdin_text=SIMPLE_DOT)
        self.assertEqual(code, 2)
        self.assertIn("TOTAL_MEMORY", err)

    @unittest.skipUnless(HAS_DOT, "Graphviz dot executable not installed")
    def test_write_png(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            source = self.write_dot(td)
            target = Path(td) / "out.png"
            code, _out, _data, err = self.run_cli([f"-o{target}", "-Tpng", str(source)])
            self.assertEqual(code, 0, err)
            with Image.open(target) as image:
                self.assertEqual(image.format, "PNG")
                self.assertGreater(image.size[0], 0)

    @unittest.skipUnless(HAS_DOT, "Graphviz dot executable not installed")
    def test_default_format_to_stdout(self) -> None:
        code, _out, data, err = self.run_cli(["-Kdot"], stdin_text=SIMPLE_DOT)
        self.assertEqual(code, 0, err)
        self.assertTrue(data.startswith(b"\x89PNG\r\n\x1a\n"))

    @unittest.skipUnless(HAS_DOT, "Graphviz dot executable not installed")
    def test_produce_svg(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            source = self.write_dot(td)
            code, _out, data, err = self.run_cli(["-Tsvg", str(source)])
            self.assertEqual(code, 0, err)
            self.assertTrue(data.startswith(b"<svg"))

    @unittest.skipUnless(HAS_DOT, "Graphviz dot executable not installed")
    def test_stream_svg(self) -> None:
        for engine in ("graphviz", "lite"):
            with self.subTest(engine=engine):
                os.environ["DOT_LITE_ENGINE"] = engine
                code, _out, data, err = self.run_cli(["-Tsvg"], stdin_text=SIMPLE_DOT)
                self.assertEqual(code, 0, err)
                self.assertTrue(data.startswith(b"<svg"))
                self.assertIn(b'pt" height="', data)

    @unittest.skipUnless(HAS_DOT, "Graphviz dot executable not installed")
    def test_svg_file_output(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            source = self.write_dot(td)
            target = Path(td) / "out.svg"
            code, _out, data, err = self.run_cli(["-Tsvg", f"-o{target}", str(source)])
            self.assertEqual(code, 0, err)
            self.assertEqual(data, b"")
            self.assertGreater(target.stat().st_size, 0)

    @unittest.skipUnless(HAS_DOT, "Graphviz dot executable not installed")
    def test_syntax_error(self) -> None:
        for engine in ("graphviz", "lite"):
            with self.subTest(engine=engine):
                os.environ["DOT_LITE_ENGINE"] = engine
                code, _out, _data, err = self.run_cli(["-Tsvg"], stdin_text="digraph G { a -> }")
                self.assertEqual(code, 3)
                self.assertIn("error[E_RENDER]", err)
                self.assertIn("syntax error", err)

    @unittest.skipUnless(HAS_DOT, "Graphviz dot executable not installed")
    def test_render_is_deterministic(self) -> None:
        _code, _out, first, _err = self.run_cli(["-Tsvg"], stdin_text=SIMPLE_DOT)
        _code, _out, second, _err = self.run_cli(["-Tsvg"], stdin_text=SIMPLE_DOT)
        self.assertTrue(first)
        self.assertEqual(first, second)

    @unittest.skipUnless(HAS_DOT, "Graphviz dot executable not installed")
    def test_lite_engine_with_resource_budget(self) -> None:
        os.environ["DOT_LITE_ENGINE"] = "lite"
        os.environ["TOTAL_STACK"] = str(64 * 1024 * 1024)
        code, _out, data, err = self.run_cli(["-Tsvg"], stdin_text=SIMPLE_DOT)
        self.assertEqual(code, 0, err)
        self.assertTrue(data.startswith(b"<svg"))


if __name__ == "__main__":
    unittest.main()
