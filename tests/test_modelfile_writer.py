from __future__ import annotations

import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from config.model_template_config import ModelTemplateConfig
from inout.modelfile_writer import render_modelfile, write_atomic, write_modelfile


class RenderModelfileTests(unittest.TestCase):
    def test_directives_in_fixed_order(self) -> None:
        params = ModelTemplateConfig.from_values(
            num_ctx=2048,
            temperature=0.2,
            top_p=0.95,
            system_preamble="Line one\r\nLine two",
        )
        text = render_modelfile("llama3.2:1b", params)
        self.assertEqual(
            text,
            "FROM llama3.2:1b\n"
            "PARAMETER num_ctx 2048\n"
            "PARAMETER temperature 0.2\n"
            "PARAMETER top_p 0.95\n"
            'SYSTEM """\n'
            "Line one\n"
            "Line two\n"
            '"""\n',
        )
        self.assertNotIn("\r", text)


class WriteAtomicTests(unittest.TestCase):
    def test_write_is_idempotent_and_byte_identical(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "config" / "Modelfile"
            params = ModelTemplateConfig()
            first = write_modelfile(path, "qwen2.5:1.5b", params)
            first_bytes = path.read_bytes()
            second = write_modelfile(path, "qwen2.5:1.5b", params)
            self.assertEqual(path.read_bytes(), first_bytes)
            self.assertEqual(first.sha256, second.sha256)
            self.assertEqual(first_bytes.decode("utf-8"), first.content)

    def test_failed_rename_keeps_prior_artifact_and_cleans_temp(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            path = root / "Modelfile"
            path.write_text("FROM previous\n", encoding="utf-8")

            with patch("inout.modelfile_writer.os.replace", side_effect=OSError("crash")):
                with self.assertRaises(OSError):
                    write_atomic(path, "FROM next\n" * 1000)

            self.assertEqual(path.read_text(encoding="utf-8"), "FROM previous\n")
            self.assertEqual(sorted(p.name for p in root.iterdir()), ["Modelfile"])

    def test_failed_write_leaves_no_file_when_none_existed(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            path = root / "Modelfile"
            with patch("inout.modelfile_writer.os.fsync", side_effect=OSError("disk gone")):
                with self.assertRaises(OSError):
                    write_atomic(path, "FROM x\n")
            self.assertFalse(path.exists())
            self.assertEqual(list(root.iterdir()), [])


if __name__ == "__main__":
    unittest.main()
