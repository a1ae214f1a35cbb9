from pathlib import Path

import pytest

from camstream.file_output import FileOutput
from camstream.output import OutputOptions


def test_single_file(tmp_path):
    path = tmp_path / "video.bin"
    with FileOutput(OutputOptions(output=str(path))) as out:
        out.output_ready(b"skip", 0, False)
        out.output_ready(b"abc", 10, True)
        out.output_ready(b"def", 20, False)
    assert path.read_bytes() == b"abcdef"


def test_segments_start_on_keyframe_after_duration(tmp_path):
    pattern = str(tmp_path / "seg%03d.bin")
    with FileOutput(OutputOptions(output=pattern, segment=1000)) as out:
        out.output_ready(b"a", 0, True)
        out.output_ready(b"b", 1_500_000, False)
        out.output_ready(b"c", 1_600_000, True)
        out.output_ready(b"d", 1_700_000, True)
    assert Path(pattern % 0).read_bytes() == b"ab"
    assert Path(pattern % 1).read_bytes() == b"cd"
    assert sorted(p.name for p in Path(pattern).parent.iterdir()) == ["seg000.bin", "seg001.bin"]


def test_split_with_wrap_reuses_names(tmp_path):
    pattern = str(tmp_path / "part%d.bin")
    with FileOutput(OutputOptions(output=pattern, split=True, wrap=2)) as out:
        for i, chunk in enumerate((b"first", b"second", b"third")):
            out.output_ready(chunk, i * 1000, True)
            out.signal()
            out.output_ready(b"paused", i * 1000 + 500, True)
            out.signal()
    assert sorted(p.name for p in Path(pattern).parent.iterdir()) == ["part0.bin", "part1.bin"]
    assert Path(pattern % 0).read_bytes() == b"third"
    assert Path(pattern % 1).read_bytes() == b"second"


def test_percent_escape_in_name(tmp_path):
    with FileOutput(OutputOptions(output=str(tmp_path / "a%%b.bin"))) as out:
        out.output_ready(b"x", 0, True)
    assert (tmp_path / "a%b.bin").read_bytes() == b"x"


def test_bad_pattern_fails(tmp_path):
    with FileOutput(OutputOptions(output=str(tmp_path / "%d-%d.bin"))) as out:
        with pytest.raises(ValueError, match="failed to generate filename"):
            out.output_ready(b"x", 0, True)


def test_no_output_name_writes_nothing(tmp_path):
    pts = tmp_path / "pts.txt"
    with FileOutput(OutputOptions(save_pts=str(pts))) as out:
        out.output_ready(b"x", 0, True)
    assert pts.read_text().splitlines() == ["# timecode format v2", "0.000"]
    assert sorted(p.name for p in pts.parent.iterdir()) == ["pts.txt"]