import argparse
import io
import os

import pytest

import ascii_converter
from ascii_converter import ConsoleObserver, build_parser, build_request, main, parse_bounds
from conftest import SAMPLE_PGM
from conversion_pipeline import MSG_TOO_LARGE
from raster_sources import AutoRasterSource, MagickRasterSource


@pytest.fixture
def sample_pgm(tmp_path):
    path = tmp_path / "sample.pgm"
    path.write_bytes(SAMPLE_PGM)
    return path


def test_parse_bounds():
    assert parse_bounds("120x40") == (120, 40)
    assert parse_bounds("80X24") == (80, 24)
    for bad in ("120", "axb", "0x10", "1x2x3"):
        with pytest.raises(argparse.ArgumentTypeError):
            parse_bounds(bad)


def test_build_request_maps_flags():
    args = build_parser().parse_args(["in.png", "-s", "2.5", "--invert", "--no-size-limit",
                                      "--bounds", "90x30", "--max-scale", "20", "--margin-w", "2"])
    request = build_request(args)
    assert request.source == "in.png"
    assert request.scale_factor == 2.5
    assert (request.bounds_width, request.bounds_height) == (90, 30)
    assert request.config.invert_ramp
    assert not request.config.enforce_size_limit
    assert request.config.max_scale_factor == 20
    assert request.config.margin_width == 2
    assert request.config.margin_height == 0


def test_console_observer_throttles_progress():
    stream = io.StringIO()
    observer = ConsoleObserver(stream=stream, step=0.5)
    for i in range(1, 11):
        observer.on_progress(i / 10)
    observer.on_complete("", False)
    assert stream.getvalue() == "\rDecoded 50%\rDecoded 100%\n"
    assert observer.done.is_set()


def test_main_writes_output_file(sample_pgm, tmp_path, capsys):
    out = tmp_path / "art.txt"
    main([str(sample_pgm), "--bounds", "200x100", "-o", str(out)])
    lines = out.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    assert lines[0][0] == " " and lines[0][-1] == "@"
    assert lines[1] == lines[0][::-1]
    assert "saved" in capsys.readouterr().out


def test_main_prints_to_stdout(sample_pgm, capsys):
    main([str(sample_pgm), "--bounds", "200x100", "--invert", "-c", "local"])
    out = capsys.readouterr().out
    assert out.splitlines()[0][0] == "@"


def test_main_removes_magick_temp_dir(sample_pgm, monkeypatch):
    source = AutoRasterSource(MagickRasterSource(magick_path="magick"))
    monkeypatch.setattr(ascii_converter, "default_raster_source", lambda converter: source)
    main([str(sample_pgm), "--bounds", "200x100"])
    assert not os.path.exists(source.converter.temp_dir)


def test_main_removes_temp_dir_on_failure(sample_pgm, monkeypatch):
    source = AutoRasterSource(MagickRasterSource(magick_path="magick"))
    monkeypatch.setattr(ascii_converter, "default_raster_source", lambda converter: source)
    with pytest.raises(SystemExit):
        main([str(sample_pgm), "--bounds", "2x2"])
    assert not os.path.exists(source.converter.temp_dir)


def test_main_missing_file(tmp_path, capsys):
    with pytest.raises(SystemExit) as exc:
        main([str(tmp_path / "nope.png")])
    assert exc.value.code == 1
    assert "not found" in capsys.readouterr().out


def test_main_reports_too_large(sample_pgm, capsys):
    with pytest.raises(SystemExit) as exc:
        main([str(sample_pgm), "--bounds", "2x2"])
    assert exc.value.code == 1
    assert MSG_TOO_LARGE in capsys.readouterr().out
