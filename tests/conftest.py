import textwrap

import pytest


SAMPLE_BLOCK = textwrap.dedent(
    """\
    project: Acme
    period:
      from: 01-06-2025
      to: 30-06-2025
    June:
      01-06-2025:
        - from: "09:00"
          to: "17:00"
          break: 30m
          note: Planning
      02-06-2025:
        - from: 09:00
          to: 09:00
      03-06-2025:
        - from: 9:99
          to: 17:00
    """
)

SAMPLE_MARKDOWN = (
    "# Work log\n"
    "\n"
    "Some notes before the log.\n"
    "\n"
    "```time-log\n"
    + SAMPLE_BLOCK
    + "```\n"
    "\n"
    "Trailing notes, keep me.\n"
)


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Keep TIMELOG_* settings from the environment out of every test."""
    for name in ("TIMELOG_BLOCK_LANGUAGE", "TIMELOG_ORDER", "TIMELOG_DEBUG"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("TIMELOG_CONFIG_JSON", str(tmp_path / "missing_config.json"))


@pytest.fixture
def sample_block():
    return SAMPLE_BLOCK


@pytest.fixture
def markdown_file(tmp_path):
    path = tmp_path / "log.md"
    path.write_text(SAMPLE_MARKDOWN, encoding="utf-8")
    return path
