from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from textwrap import wrap

DEFAULT_WRAP_WIDTH = 110
MAX_LABEL_WIDTH = 22
INDENT = "    "

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s\n%(message)s\n"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: int = logging.INFO, log_file: Path | None = None) -> None:
    """Configure root logging for the CLI; optionally mirror records to ``log_file``."""
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=handlers,
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))


def _format_value(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple, set)):
        return ", ".join(_format_value(item) for item in value)
    return str(value).strip()


def render_fields_block(
    title: str,
    fields: Mapping[str, object],
    *,
    pad_top: bool = True,
    width: int = DEFAULT_WRAP_WIDTH,
) -> str:
    """Render ``fields`` as aligned ``label: value`` lines under an underlined title.

    Long values wrap onto continuation lines indented past the labels.
    """
    label_width = max(min(max((len(key) for key in fields), default=0), MAX_LABEL_WIDTH), 8)
    value_width = max(width - len(INDENT) - label_width - 4, 32)

    lines = [""] if pad_top else []
    lines += [title, "-" * len(title)]
    for key, value in fields.items():
        wrapped = [
            piece for raw_line in _format_value(value).splitlines() for piece in (wrap(raw_line, value_width) or [""])
        ] or [""]
        lines.append(f"{INDENT}{key:<{label_width}}: {wrapped[0]}")
        lines.extend(f"{INDENT}{'':<{label_width}}  {piece}" for piece in wrapped[1:])
    return "\n".join(lines).rstrip()
