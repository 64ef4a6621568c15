from PIL import Image

from captionsum.cli import main

from conftest import make_image


def test_compress_writes_downscaled_jpeg(tmp_path, capsys):
    src = tmp_path / "in.png"
    out = tmp_path / "out.jpeg"
    src.write_bytes(make_image(2400, 1200))

    assert main(["compress", str(src), str(out), "--target-kb", "200"]) == 0

    with Image.open(out) as img:
        assert img.format == "JPEG"
        assert img.size == (1920, 960)
    assert len(out.read_bytes()) <= 210 * 1024
    assert "1920x960" in capsys.readouterr().out


def test_compress_undecodable_input(tmp_path, capsys):
    src = tmp_path / "in.png"
    src.write_bytes(b"not an image")
    assert main(["compress", str(src), str(tmp_path / "out.jpeg")]) == 1
    assert "error: Could not decode image" in capsys.readouterr().err
    assert not (tmp_path / "out.jpeg").exists()


def test_summarize_rejects_bad_video_id(capsys):
    assert main(["summarize", "nope"]) == 1
    assert "Invalid videoId" in capsys.readouterr().err
