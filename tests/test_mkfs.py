from otkernel.mkfs import main
from otkernel.otfs import MAGIC, FileSystem, OpenFlags


def test_writes_image(tmp_path, capsys):
    path = tmp_path / "disk.img"
    assert main([str(path)]) == 0
    out = capsys.readouterr().out
    assert out == f"mkfs: wrote deterministic image {path}\n"
    assert path.read_bytes()[:8] == MAGIC


def test_image_is_mountable(tmp_path):
    path = tmp_path / "disk.img"
    assert main([str(path)]) == 0
    with FileSystem(path) as filesystem:
        fd = filesystem.open("x", OpenFlags.READ | OpenFlags.WRITE | OpenFlags.CREATE)
        assert filesystem.write(fd, b"abc") == 3


def test_output_is_deterministic(tmp_path):
    first = tmp_path / "one.img"
    second = tmp_path / "two.img"
    assert main([str(first)]) == 0
    assert main([str(second)]) == 0
    assert first.read_bytes() == second.read_bytes()


def test_usage_on_wrong_argument_count(capsys):
    assert main([]) == 2
    assert "usage:" in capsys.readouterr().err
    assert main(["a", "b"]) == 2


def test_failure_reported(tmp_path, capsys):
    path = tmp_path / "missing-dir" / "disk.img"
    assert main([str(path)]) == 1
    assert capsys.readouterr().err == f"mkfs failed for {path}\n"