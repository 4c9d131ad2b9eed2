from pathlib import Path

import numpy as np
import PIL.Image
import pytest

import plot
from domaincolor import RenderConfig, render_frame


@pytest.fixture(autouse=True)
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path


def test_writes_default_output():
    assert plot.main(["z", "-s", "8", "--no-progress"]) == 0
    output = Path("output.png")
    assert output.is_file()
    with PIL.Image.open(output) as image:
        assert image.size == (8, 8)
        assert image.mode == "RGB"


def test_image_matches_pixel_buffer():
    assert plot.main(["z^2 - 1", "-s", "6", "-r", "2", "-m", "2", "--no-progress"]) == 0
    expected = render_frame(RenderConfig("z^2 - 1", size=6, half_range=2.0, mode=2), progress=False)
    with PIL.Image.open("output.png") as image:
        np.testing.assert_array_equal(np.array(image), expected.pixels)


def test_rendering_twice_is_byte_identical():
    assert plot.main(["sin(z)", "-s", "8", "--output", "a.png", "--no-progress"]) == 0
    assert plot.main(["sin(z)", "-s", "8", "--output", "b.png", "--no-progress"]) == 0
    assert Path("a.png").read_bytes() == Path("b.png").read_bytes()


def test_parse_error_exits_without_image(capsys):
    assert plot.main(["z +", "-s", "4", "--no-progress"]) == 1
    assert "invalid expression" in capsys.readouterr().err
    assert not Path("output.png").exists()


def test_evaluation_error_exits_without_image(capsys):
    assert plot.main(["1/z", "-s", "4", "--no-progress"]) == 1
    assert "evaluation failed at pixel (2, 2)" in capsys.readouterr().err
    assert not Path("output.png").exists()


def test_sentinel_policy_writes_image():
    assert plot.main(["1/z", "-s", "4", "--on-error", "sentinel", "--no-progress"]) == 0
    with PIL.Image.open("output.png") as image:
        assert image.getpixel((2, 2)) == (255, 0, 255)


def test_format_changes_default_suffix():
    assert plot.main(["z", "-s", "4", "--format", "bmp", "--no-progress"]) == 0
    assert Path("output.bmp").is_file()


def test_write_failure_exits_non_zero(capsys):
    Path("blocker").write_text("not a directory")
    assert plot.main(["z", "-s", "4", "--output", "blocker/out.png", "--no-progress"]) == 1
    assert "could not write" in capsys.readouterr().err


def test_explicit_default_name_must_match_format():
    with pytest.raises(SystemExit) as excinfo:
        plot.main(["z", "-s", "4", "--output", "output.png", "--format", "bmp", "--no-progress"])
    assert excinfo.value.code == 2
    assert not Path("output.png").exists()
    assert not Path("output.bmp").exists()


@pytest.mark.parametrize(
    "argv",
    [
        ["z", "-s", "0"],
        ["z", "-r", "0"],
        ["z", "--precision", "16"],
        ["z", "--workers", "0"],
        ["z", "--on-error", "ignore"],
        ["z", "--output", "image.jpg", "--format", "png"],
    ],
)
def test_invalid_options_are_rejected(argv):
    with pytest.raises(SystemExit) as excinfo:
        plot.main(argv)
    assert excinfo.value.code == 2
