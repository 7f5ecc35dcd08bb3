from __future__ import annotations

import logging

from concertsync.logging_utils import LOG_FORMAT, configure_logging, render_fields_block


class TestRenderFieldsBlock:
    """Tests for the block renderer used in sync summaries."""

    def test_title_underline_and_alignment(self):
        block = render_fields_block("Sync Complete", {"Shows": 2, "Recordings": 3})
        lines = block.splitlines()
        assert lines[0] == ""
        assert lines[1] == "Sync Complete"
        assert lines[2] == "-" * len("Sync Complete")
        assert lines[3].strip().startswith("Shows")
        assert lines[3].index(":") == lines[4].index(":")

    def test_without_padding(self):
        assert render_fields_block("T", {}, pad_top=False).splitlines()[0] == "T"

    def test_value_formatting(self):
        lines = render_fields_block("T", {"None": None, "List": ["a", 2], "Text": "  padded "}).splitlines()
        assert lines[3].rstrip().endswith(":")
        assert lines[4].endswith(": a, 2")
        assert lines[5].endswith(": padded")

    def test_long_values_wrap(self):
        lines = render_fields_block("Review", {"Body": "word " * 40}, width=60).splitlines()
        assert len(lines) > 4
        assert all(len(line) <= 60 for line in lines)
        assert lines[4].startswith(" " * 14)


class TestConfigureLogging:
    def test_sets_level_and_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "concertsync.log"
        configure_logging(logging.DEBUG, log_file)
        try:
            root = logging.getLogger()
            assert root.level == logging.DEBUG
            assert any(isinstance(h, logging.FileHandler) for h in root.handlers)
            assert logging.getLogger("httpx").level == logging.WARNING
            logging.getLogger("concertsync.test").info("hello")
            for handler in root.handlers:
                handler.flush()
            assert "hello" in log_file.read_text(encoding="utf-8")
            assert "%(levelname)-8s" in LOG_FORMAT
        finally:
            root = logging.getLogger()
            for handler in list(root.handlers):
                root.removeHandler(handler)
                handler.close()
            root.setLevel(logging.WARNING)
