import os
import time

from soulsketch.services.housekeeping import cleanup_old_files


def test_only_old_files_are_removed(tmp_path):
    old, fresh = tmp_path / "old.png", tmp_path / "fresh.png"
    old.write_bytes(b"x"); fresh.write_bytes(b"y")
    (tmp_path / "subdir").mkdir()
    ten_days_ago = time.time() - 10 * 86400
    os.utime(old, (ten_days_ago, ten_days_ago))
    assert cleanup_old_files(str(tmp_path), 7)==1
    assert not old.exists() and fresh.exists() and (tmp_path / "subdir").exists()


def test_missing_directory_is_a_noop(tmp_path):
    assert cleanup_old_files(str(tmp_path / "nope"))==0
