"""Tests for the per-root status cache."""

from vcwatch.core.status_cache import StatusCache, StatusSnapshot, is_within
from vcwatch.domain.status import VCItemStatus

M = VCItemStatus.MODIFIED
A = VCItemStatus.ADDED
C = VCItemStatus.CONFLICTED
U = VCItemStatus.UNKNOWN


def loaded_cache(entries: dict[str, VCItemStatus]) -> StatusCache:
    cache = StatusCache()
    cache.complete_refresh(cache.force_refresh(), entries)
    return cache


class TestIsWithin:
    def test_empty_subtree_contains_everything(self):
        assert is_within("a/b", "")

    def test_sibling_prefix_is_not_within(self):
        assert not is_within("src-b/x", "src")
        assert is_within("src/x", "src")
        assert is_within("src", "src")


class TestSnapshot:
    def test_local_changes_propagate_to_all_ancestors(self):
        snapshot = StatusSnapshot.build({"a/b/c.txt": M}, loaded=True)
        assert snapshot.directories["a/b"] is M
        assert snapshot.directories["a"] is M
        assert snapshot.directories[""] is M

    def test_directory_keeps_worst_descendant(self):
        snapshot = StatusSnapshot.build({"a/x": M, "a/y": C, "a/z": A}, loaded=True)
        assert snapshot.directories["a"] is C

    def test_untracked_files_do_not_propagate(self):
        snapshot = StatusSnapshot.build({"a/new.txt": U}, loaded=True)
        assert "a" not in snapshot.directories


class TestGetOverlay:
    def test_unlisted_file_is_up_to_date(self):
        cache = loaded_cache({"a.txt": M})
        assert cache.get_overlay("b.txt") is VCItemStatus.UP_TO_DATE

    def test_file_status_is_exact_entry(self):
        cache = loaded_cache({"src/a.py": M})
        assert cache.get_overlay("src/a.py") is M

    def test_directory_status_is_worst_descendant(self):
        cache = loaded_cache({"src/a.py": M, "src/lib/b.py": C})
        assert cache.get_overlay("src") is C
        assert cache.get_overlay("src/lib") is C

    def test_file_inside_untracked_directory_is_unknown(self):
        cache = loaded_cache({"build": VCItemStatus.IGNORED, "new": U})
        assert cache.get_overlay("build/out.o") is VCItemStatus.IGNORED
        assert cache.get_overlay("new/deep/file.txt") is U


class TestRefreshGenerations:
    def test_new_cache_is_not_loaded(self):
        assert not StatusCache().loaded

    def test_full_refresh_marks_loaded(self):
        cache = loaded_cache({})
        assert cache.loaded

    def test_generations_increase(self):
        cache = StatusCache()
        first = cache.invalidate("a")
        second = cache.force_refresh()
        assert second.generation > first.generation
        assert cache.generation == second.generation

    def test_stale_targeted_refresh_is_discarded_after_forced_refresh(self):
        cache = loaded_cache({})
        stale = cache.invalidate("a.txt")
        full = cache.force_refresh()

        assert cache.complete_refresh(full, {"b.txt": M})
        assert not cache.complete_refresh(stale, {"a.txt": C})
        assert cache.get_overlay("a.txt") is VCItemStatus.UP_TO_DATE
        assert cache.get_overlay("b.txt") is M

    def test_stale_full_refresh_is_discarded(self):
        cache = StatusCache()
        old = cache.force_refresh()
        new = cache.force_refresh()
        assert cache.complete_refresh(new, {"x": M})
        assert not cache.complete_refresh(old, {"y": M})
        assert "y" not in cache.snapshot.entries

    def test_targeted_refresh_replaces_only_its_subtree(self):
        cache = loaded_cache({"src/a.py": M, "src/b.py": M, "docs/x.md": M})
        ticket = cache.invalidate("src")
        assert cache.complete_refresh(ticket, {"src/b.py": A})
        assert dict(cache.snapshot.entries) == {"src/b.py": A, "docs/x.md": M}

    def test_targeted_result_newer_than_running_full_scan_survives(self):
        cache = loaded_cache({})
        full = cache.force_refresh()
        targeted = cache.invalidate("a.txt")

        assert cache.complete_refresh(targeted, {"a.txt": M})
        # The full scan ran before a.txt changed and did not see it.
        assert cache.complete_refresh(full, {})
        assert cache.get_overlay("a.txt") is M

    def test_older_targeted_result_arriving_late_is_discarded(self):
        cache = loaded_cache({})
        older = cache.invalidate("a.txt")
        newer = cache.invalidate("a.txt")

        assert cache.complete_refresh(newer, {"a.txt": M})
        assert not cache.complete_refresh(older, {})
        assert cache.get_overlay("a.txt") is M

    def test_older_directory_result_keeps_newer_file_result(self):
        cache = loaded_cache({"src/a.py": M, "src/b.py": M})
        older = cache.invalidate("src")
        newer = cache.invalidate("src/a.py")

        assert cache.complete_refresh(newer, {"src/a.py": C})
        assert cache.complete_refresh(older, {"src/b.py": A})
        assert dict(cache.snapshot.entries) == {"src/a.py": C, "src/b.py": A}

    def test_late_results_replay_in_start_order_after_full_scan(self):
        cache = loaded_cache({})
        full = cache.force_refresh()
        older = cache.invalidate("a.txt")
        newer = cache.invalidate("a.txt")

        assert cache.complete_refresh(newer, {"a.txt": C})
        assert not cache.complete_refresh(older, {"a.txt": M})
        assert cache.complete_refresh(full, {})
        assert cache.get_overlay("a.txt") is C

    def test_targeted_results_are_not_kept_without_pending_full_scan(self):
        cache = loaded_cache({})
        for i in range(5):
            cache.complete_refresh(cache.invalidate(f"f{i}"), {f"f{i}": M})
        assert cache._recent_targeted == []

    def test_abandoned_full_refresh_stops_tracking_targeted_results(self):
        cache = loaded_cache({})
        full = cache.force_refresh()
        cache.abandon(full)
        cache.complete_refresh(cache.invalidate("a"), {"a": M})
        assert cache._recent_targeted == []


class TestPutAndClear:
    def test_put_stores_single_result(self):
        cache = StatusCache()
        cache.put("a.txt", M)
        assert cache.get_overlay("a.txt") is M
        assert cache.get_overlay("") is M
        assert not cache.loaded

    def test_clear_drops_entries_and_supersedes_refreshes(self):
        cache = loaded_cache({"a": M})
        ticket = cache.invalidate("a")
        cache.clear()
        assert not cache.loaded
        assert not cache.complete_refresh(ticket, {"a": C})
        assert cache.get_overlay("a") is VCItemStatus.UP_TO_DATE
