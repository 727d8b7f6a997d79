import os
import stat
import sys

import pytest

# Make the gateway package importable without an editable install.
_GATEWAY_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "gateway"))
if _GATEWAY_DIR not in sys.path:
    sys.path.insert(0, _GATEWAY_DIR)


# Shell preamble for fake model-runners: records argv and finds the prompt file.
RUNNER_PREAMBLE = """#!/bin/sh
ALL_ARGS="$*"
PROMPT_FILE=""
while [ $# -gt 0 ]; do
  if [ "$1" = "-f" ]; then PROMPT_FILE="$2"; fi
  shift
done
echo "$ALL_ARGS" >> "{calls}"
"""


class FakeRunner:
    def __init__(self, path: str, calls_log: str):
        self.path = path
        self.calls_log = calls_log

    def calls(self) -> list[str]:
        if not os.path.exists(self.calls_log):
            return []
        with open(self.calls_log) as f:
            return [line.rstrip("\n") for line in f if line.strip()]


@pytest.fixture
def make_runner(tmp_path):
    """Create an executable shell script standing in for llama.cpp."""
    counter = {"n": 0}

    def _make(body: str) -> FakeRunner:
        counter["n"] += 1
        path = tmp_path / f"fake-llama-{counter['n']}"
        calls_log = tmp_path / f"calls-{counter['n']}.log"
        path.write_text(RUNNER_PREAMBLE.format(calls=calls_log) + body + "\n")
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return FakeRunner(str(path), str(calls_log))

    return _make


@pytest.fixture
def models_dir(tmp_path):
    directory = tmp_path / "models"
    directory.mkdir()
    (directory / "tiny.gguf").write_bytes(b"GGUF\x00fake")
    return directory


@pytest.fixture
def workspace_dir(tmp_path):
    return tmp_path / "jobs"
