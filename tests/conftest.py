import sys
import textwrap
from pathlib import Path
from typing import Callable

import pytest

from mediatoolkit.config import Settings


@pytest.fixture
def make_tool(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write an executable Python script standing in for yt-dlp/ffmpeg/ffprobe."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()

    def _make(name: str, body: str) -> Path:
        path = bin_dir / name
        path.write_text(f"#!{sys.executable}\n" + textwrap.dedent(body), encoding="utf-8")
        path.chmod(0o755)
        return path

    return _make


@pytest.fixture
def scratch_root(tmp_path: Path) -> Path:
    root = tmp_path / "scratch"
    root.mkdir()
    return root


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(output_root=tmp_path / "out")
