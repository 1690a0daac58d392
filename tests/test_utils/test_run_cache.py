"""
RunCache tests
"""

import json
import os
import time

from newsletter_digest.utils.run_cache import RunCache


class TestRunCache:
    """Snapshot save/load per run"""

    def test_save_and_load(self, tmp_path):
        cache = RunCache(str(tmp_path), run_id="run_1")

        path = cache.save("clusters", [{"id": 0, "article_ids": ["a", "b"]}])

        assert path == tmp_path / "run_1" / "clusters.json"
        assert cache.path_for("clusters").exists()
        assert cache.load("clusters") == [{"id": 0, "article_ids": ["a", "b"]}]

    def test_load_missing_returns_none(self, tmp_path):
        cache = RunCache(str(tmp_path), run_id="run_1")
        assert cache.load("nothing") is None
        assert not cache.path_for("nothing").exists()

    def test_load_corrupt_returns_none(self, tmp_path):
        cache = RunCache(str(tmp_path), run_id="run_1")
        cache.run_dir.mkdir(parents=True)
        cache.path_for("broken").write_text("{not json", encoding="utf-8")

        assert cache.load("broken") is None

    def test_unserialisable_falls_back_to_str(self, tmp_path):
        cache = RunCache(str(tmp_path), run_id="run_1")
        cache.save("odd", {"value": object()})

        loaded = cache.load("odd")
        assert isinstance(loaded["value"], str)

    def test_default_run_id(self, tmp_path):
        cache = RunCache(str(tmp_path))
        assert cache.run_id.startswith("run_")

    def test_save_error_record(self, tmp_path):
        cache = RunCache(str(tmp_path), run_id="run_1")

        cache.save_error(ValueError("bad cluster"), {"articles": 12})

        record = json.loads(cache.path_for("error").read_text(encoding="utf-8"))
        assert record["message"] == "bad cluster"
        assert record["name"] == "ValueError"
        assert record["stats"] == {"articles": 12}
        assert "timestamp" in record

    def test_cleanup_old_runs(self, tmp_path):
        old = RunCache(str(tmp_path), run_id="old_run")
        old.save("articles", [])
        stale = time.time() - 30 * 24 * 3600
        os.utime(old.run_dir, (stale, stale))

        current = RunCache(str(tmp_path), run_id="new_run", max_age_hours=24)
        current.save("articles", [])

        assert current.cleanup_old_runs() == 1
        assert not old.run_dir.exists()
        assert current.run_dir.exists()

    def test_cleanup_without_cache_dir(self, tmp_path):
        cache = RunCache(str(tmp_path / "missing"))
        assert cache.cleanup_old_runs() == 0
