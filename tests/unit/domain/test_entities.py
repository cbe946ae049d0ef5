"""Tests for domain entities and the status model."""

from pathlib import Path

import pytest

from vcwatch.domain.entities import Project, WatcherVCResult, to_relative_key
from vcwatch.domain.status import VCItemStatus, worst


class TestVCItemStatus:
    def test_order_matches_severity(self):
        ordered = sorted(VCItemStatus, key=int)
        assert ordered[0] is VCItemStatus.UNKNOWN
        assert ordered[-1] is VCItemStatus.EXTERNAL
        assert VCItemStatus.IGNORED < VCItemStatus.UP_TO_DATE < VCItemStatus.MODIFIED
        assert VCItemStatus.DELETED < VCItemStatus.CONFLICTED

    @pytest.mark.parametrize(
        "status,expected",
        [
            (VCItemStatus.UNKNOWN, False),
            (VCItemStatus.IGNORED, False),
            (VCItemStatus.UP_TO_DATE, True),
            (VCItemStatus.MODIFIED, True),
        ],
    )
    def test_is_tracked(self, status, expected):
        assert status.is_tracked is expected

    def test_every_concrete_change_has_local_changes(self):
        changes = [s for s in VCItemStatus if s > VCItemStatus.UP_TO_DATE]
        assert changes
        assert all(s.has_local_changes for s in changes)
        assert not VCItemStatus.UP_TO_DATE.has_local_changes

    def test_every_status_has_a_badge(self):
        assert {s.badge for s in VCItemStatus} >= {"?", "M", "A", "D", "C"}

    def test_worst_of_empty_is_up_to_date(self):
        assert worst([]) is VCItemStatus.UP_TO_DATE

    def test_worst_picks_highest(self):
        assert worst([VCItemStatus.MODIFIED, VCItemStatus.CONFLICTED]) is VCItemStatus.CONFLICTED


class TestToRelativeKey:
    def test_root_is_empty_key(self, tmp_path):
        assert to_relative_key(tmp_path, tmp_path) == ""

    def test_nested_path_uses_posix_separators(self, tmp_path):
        assert to_relative_key(tmp_path / "src" / "a.py", tmp_path) == "src/a.py"

    def test_outside_root_raises(self, tmp_path):
        with pytest.raises(ValueError):
            to_relative_key(tmp_path.parent / "other", tmp_path)


class TestProject:
    def test_output_path_defaults_to_root(self, tmp_path):
        assert Project(root=tmp_path).output_path_absolute == tmp_path

    def test_relative_output_path_is_joined_to_root(self, tmp_path):
        project = Project(root=tmp_path, output_path=Path("bin"))
        assert project.output_path_absolute == tmp_path / "bin"

    def test_relative_path_inside_and_outside(self, tmp_path):
        project = Project(root=tmp_path / "proj")
        assert project.relative_path(tmp_path / "proj" / "a" / "b.txt") == "a/b.txt"
        assert project.relative_path(tmp_path / "elsewhere.txt") == str(tmp_path / "elsewhere.txt")


class TestWatcherVCResult:
    def test_relative_path(self, tmp_path):
        result = WatcherVCResult(
            path=tmp_path / "src" / "x.py",
            root=tmp_path,
            status=VCItemStatus.MODIFIED,
            backend=object(),
        )
        assert result.relative_path == "src/x.py"
