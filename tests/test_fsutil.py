import os
import stat

import pytest

from locres.classes import LanguageInfo
from locres.fsutil import atomic_write, remove_if_empty
from locres.resx import ResxResourceReader, ResxResourceWriter

pytestmark = pytest.mark.skipif(os.name == "nt", reason="POSIX file modes")


def mode_of(path):
    return stat.S_IMODE(path.stat().st_mode)


def test_atomic_write_keeps_existing_mode(tmp_path):
    path = tmp_path / "strings.json"
    path.write_text("{}", encoding="utf-8")
    path.chmod(0o640)

    atomic_write(path, b'{"a": "b"}')

    assert path.read_bytes() == b'{"a": "b"}'
    assert mode_of(path) == 0o640


def test_atomic_write_new_file_follows_umask(tmp_path):
    umask = os.umask(0o022)
    try:
        atomic_write(tmp_path / "new" / "strings.json", b"{}")
    finally:
        os.umask(umask)

    assert mode_of(tmp_path / "new" / "strings.json") == 0o644
    assert [x.name for x in (tmp_path / "new").iterdir()] == ["strings.json"]


def test_resx_update_keeps_mode(tmp_path, resx_file):
    path = resx_file(tmp_path / "Resources.resx", [("Title", "Hello", None)])
    path.chmod(0o644)
    language = LanguageInfo("Resources", "", "Default", True, str(path))

    ResxResourceWriter().write(ResxResourceReader().read(language))

    assert mode_of(path) == 0o644


def test_remove_if_empty(tmp_path):
    (tmp_path / "full").mkdir()
    (tmp_path / "full" / "a.txt").write_text("a")
    (tmp_path / "empty").mkdir()

    assert remove_if_empty(tmp_path / "empty")
    assert not remove_if_empty(tmp_path / "full")
    assert not (tmp_path / "empty").exists()
