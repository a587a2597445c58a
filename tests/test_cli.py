import pytest

from jpgdatesetter import __version__
from jpgdatesetter.cli import (
    EXIT_BAD_PATTERN,
    EXIT_BAD_TIMESTAMP,
    EXIT_IO_FAILURE,
    EXIT_OK,
    format_tags,
    main,
)
from jpgdatesetter.metadata_utils import read_date_tags

from conftest import SOURCE_DATE, build_jpeg, build_png, camera_tiff


@pytest.fixture
def photo_dir(tmp_path):
    source = tmp_path / "in"
    source.mkdir()
    (source / "1.jpg").write_bytes(build_jpeg(camera_tiff('<')))
    (source / "2.jpg").write_bytes(build_jpeg())
    (source / "3.png").write_bytes(build_png())
    return source


def test_stamps_and_reports(photo_dir, tmp_path, capsys):
    out = tmp_path / "out"
    code = main([str(photo_dir), str(out), "2021-01-20T17:00:00Z", "PT10M"])

    assert code == EXIT_OK
    captured = capsys.readouterr()
    assert captured.out.startswith("Parameters - FROM: ")
    assert f"SOURCE: {photo_dir / '1.jpg'}" in captured.out
    assert f"DateTime: {SOURCE_DATE}" in captured.out
    assert "DateTimeDigitized: Not Found." in captured.out
    assert "DEST: " in captured.out
    assert "Processed 2 file(s), skipped 1." in captured.out
    assert "Skipping" in captured.err and "3.png" in captured.err

    assert read_date_tags((out / "2.jpg").read_bytes())["DateTimeOriginal"] == "2021:01:20 17:10:00"
    assert not (out / "3.png").exists()


def test_pattern_option(photo_dir, tmp_path, capsys):
    out = tmp_path / "out"
    assert main(["-p", "*.png", str(photo_dir), str(out), "2021-01-20T17:00:00Z", "PT1S"]) == EXIT_OK
    assert "Processed 0 file(s), skipped 1." in capsys.readouterr().out


def test_debug_mode_does_not_create_output(photo_dir, tmp_path, capsys):
    out = tmp_path / "out"
    assert main(["--debug", str(photo_dir), str(out), "2021-01-20T17:00:00Z", "PT10M"]) == EXIT_OK
    assert not out.exists()
    assert "DEST: " not in capsys.readouterr().out


@pytest.mark.parametrize("start, increment", [
    ("yesterday", "PT10M"),
    ("2021-01-20T17:00:00", "PT10M"),
    ("2021-01-20T17:00:00Z", "P1M"),
])
def test_bad_timestamp_exit_code(photo_dir, tmp_path, capsys, start, increment):
    out = tmp_path / "out"
    assert main([str(photo_dir), str(out), start, increment]) == EXIT_BAD_TIMESTAMP
    assert "Error:" in capsys.readouterr().err
    assert not out.exists()


def test_unusable_output_directory(photo_dir, tmp_path):
    blocker = tmp_path / "out"
    blocker.write_bytes(b"")
    assert main([str(photo_dir), str(blocker), "2021-01-20T17:00:00Z", "PT10M"]) == EXIT_IO_FAILURE


def test_missing_source_directory(tmp_path, capsys):
    code = main([str(tmp_path / "nope"), str(tmp_path / "out"), "2021-01-20T17:00:00Z", "PT10M"])
    assert code == EXIT_IO_FAILURE
    assert "not found" in capsys.readouterr().err


def test_version(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["--version"])
    assert excinfo.value.code == 0
    assert __version__ in capsys.readouterr().out


def test_format_tags():
    assert format_tags({"DateTime": None, "DateTimeOriginal": "2021:01:20 17:00:00"}) == (
        "DateTime: Not Found.\nDateTimeOriginal: 2021:01:20 17:00:00"
    )


def test_brace_pattern_and_subdirectories(photo_dir, tmp_path, capsys):
    (photo_dir / "nested").mkdir()
    (photo_dir / "nested" / "4.jpeg").write_bytes(build_jpeg())
    out = tmp_path / "out"

    assert main(["-p", "*.{jpg,jpeg}", str(photo_dir), str(out), "2021-01-20T17:00:00Z", "PT1S"]) == EXIT_OK
    assert "Processed 2 file(s), skipped 0." in capsys.readouterr().out
    assert not (out / "4.jpeg").exists()

    assert main(["-p", "**.{jpg,jpeg}", str(photo_dir), str(out), "2021-01-20T17:00:00Z", "PT1S"]) == EXIT_OK
    assert "Processed 3 file(s), skipped 0." in capsys.readouterr().out
    assert (out / "4.jpeg").exists()


def test_malformed_pattern_exit_code(photo_dir, tmp_path, capsys):
    out = tmp_path / "out"
    assert main(["-p", "*.{jpg", str(photo_dir), str(out), "2021-01-20T17:00:00Z", "PT1S"]) == EXIT_BAD_PATTERN
    assert "Error:" in capsys.readouterr().err
    assert not out.exists()
