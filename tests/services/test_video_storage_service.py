"""
视频存储服务测试
"""
import base64

from recruitai.services.video_storage import VideoStorage


def test_save_and_resolve(tmp_path):
    storage = VideoStorage(str(tmp_path / "videos"))
    path = storage.save(b"webm-bytes", "../../etc/answer.webm")

    filename = path.rsplit("/", 1)[-1]
    assert filename.endswith("_answer.webm")
    assert storage.resolve(filename).read_bytes() == b"webm-bytes"
    assert storage.get_url(path) == f"/api/videos/{filename}"


def test_save_base64_strips_data_url(tmp_path):
    storage = VideoStorage(str(tmp_path))
    encoded = "data:video/webm;base64," + base64.b64encode(b"\x1a\x45\xdf\xa3").decode()

    path = storage.save_base64(encoded, "clip.webm")
    assert storage.read(path) == b"\x1a\x45\xdf\xa3"


def test_resolve_rejects_traversal(tmp_path):
    storage = VideoStorage(str(tmp_path / "videos"))
    storage.save(b"x", "a.webm")
    (tmp_path / "secret.txt").write_text("secret")

    assert storage.resolve("../secret.txt") is None
    assert storage.resolve("missing.webm") is None
    assert storage.resolve("") is None


def test_delete(tmp_path):
    storage = VideoStorage(str(tmp_path))
    path = storage.save(b"x", "a.webm")
    assert storage.delete(path) is True
    assert storage.delete(path) is False
    assert storage.get_url(None) is None
