"""Tests for doc_interviewer.materials and doc_interviewer.utils.project_file."""

from unittest.mock import patch

import pytest

from doc_interviewer.errors import UnreadableMaterials
from doc_interviewer.materials import is_git_url, load_materials, scan_files
from doc_interviewer.materials.git_utils import _parse_repo_url, _repo_slug, clone_repo, clone_target_name
from doc_interviewer.utils import is_project_file, is_scan_excluded_file
from tests.conftest import make_codebase


# ── project_file ────────────────────────────────────────────────────────────

class TestProjectFile:
    @pytest.mark.parametrize("name", ["pyproject.toml", "go.mod", "package.json", "Dockerfile", "App.csproj"])
    def test_project_files(self, name) -> None:
        assert is_project_file(name)

    @pytest.mark.parametrize("name", ["main.py", "uv.lock", "", "  "])
    def test_not_project_files(self, name) -> None:
        assert not is_project_file(name)

    @pytest.mark.parametrize("name", ["uv.lock", "go.sum", "logo.PNG", ".gitignore", "data.sqlite"])
    def test_excluded_files(self, name) -> None:
        assert is_scan_excluded_file(name)

    @pytest.mark.parametrize("name", ["main.go", "README.md", ".env.example"])
    def test_included_files(self, name) -> None:
        assert not is_scan_excluded_file(name)


# ── scanner ─────────────────────────────────────────────────────────────────

class TestScanFiles:
    def test_skips_excluded_folders_and_files(self, tmp_path) -> None:
        make_codebase(tmp_path)
        (tmp_path / "node_modules" / "left-pad").mkdir(parents=True)
        (tmp_path / "node_modules" / "left-pad" / "index.js").write_text("x", encoding="utf-8")
        (tmp_path / "uv.lock").write_text("lock", encoding="utf-8")
        paths = [path for path, _size, _project in scan_files(tmp_path)]
        assert paths == ["README.md", "billing/api.py", "pyproject.toml"]

    def test_flags_project_files(self, tmp_path) -> None:
        make_codebase(tmp_path)
        flags = {path: project for path, _size, project in scan_files(tmp_path)}
        assert flags["pyproject.toml"] is True
        assert flags["billing/api.py"] is False

    def test_missing_root_returns_empty(self, tmp_path) -> None:
        assert scan_files(tmp_path / "missing") == []


# ── load_materials ──────────────────────────────────────────────────────────

class TestLoadMaterials:
    def test_loads_directory(self, tmp_path) -> None:
        materials = load_materials(make_codebase(tmp_path))
        assert materials.root == tmp_path.resolve()
        assert materials.project_file_names == ["pyproject.toml"]
        assert len(materials.files) == 3

    def test_project_files_first_for_analysis(self, tmp_path) -> None:
        materials = load_materials(make_codebase(tmp_path))
        assert [f.path for f in materials.files_for_analysis(2)] == ["pyproject.toml", "README.md"]

    def test_read_truncates(self, tmp_path) -> None:
        materials = load_materials(make_codebase(tmp_path))
        readme = next(f for f in materials.files if f.path == "README.md")
        assert materials.read(readme, max_bytes=9) == "# Billing"

    def test_read_does_not_modify_files(self, tmp_path) -> None:
        make_codebase(tmp_path)
        before = (tmp_path / "billing" / "api.py").read_bytes()
        materials = load_materials(tmp_path)
        for file in materials.files:
            materials.read(file)
        assert (tmp_path / "billing" / "api.py").read_bytes() == before

    def test_missing_path(self, tmp_path) -> None:
        with pytest.raises(UnreadableMaterials, match="does not exist"):
            load_materials(tmp_path / "missing")

    def test_file_is_not_a_directory(self, tmp_path) -> None:
        target = tmp_path / "notes.txt"
        target.write_text("x", encoding="utf-8")
        with pytest.raises(UnreadableMaterials, match="not a directory"):
            load_materials(target)

    def test_empty_directory(self, tmp_path) -> None:
        with pytest.raises(UnreadableMaterials, match="no readable files"):
            load_materials(tmp_path)

    def test_blank_location(self) -> None:
        with pytest.raises(UnreadableMaterials):
            load_materials("  ")

    def test_git_url_is_cloned_then_scanned(self, tmp_path) -> None:
        clone_root = make_codebase(tmp_path / "clone")
        with patch("doc_interviewer.materials.source.clone_repo", return_value=clone_root) as clone:
            materials = load_materials("https://github.com/acme/billing.git", data_dir=tmp_path)
        clone.assert_called_once_with("https://github.com/acme/billing.git", tmp_path)
        assert materials.location == "https://github.com/acme/billing.git"
        assert len(materials.files) == 3

    def test_clone_failure_is_unreadable(self, tmp_path) -> None:
        with patch("doc_interviewer.materials.source.clone_repo", side_effect=OSError("network down")):
            with pytest.raises(UnreadableMaterials, match="clone failed: network down"):
                load_materials("https://github.com/acme/billing.git", data_dir=tmp_path)


# ── git_utils ───────────────────────────────────────────────────────────────

class TestGitUtils:
    @pytest.mark.parametrize(
        "location, expected",
        [
            ("https://github.com/acme/billing.git", True),
            ("git@github.com:acme/billing.git", True),
            ("/srv/code/billing", False),
            ("./billing", False),
        ],
    )
    def test_is_git_url(self, location, expected) -> None:
        assert is_git_url(location) is expected

    def test_parse_branch_suffix(self) -> None:
        assert _parse_repo_url("https://github.com/acme/billing:release") == (
            "https://github.com/acme/billing",
            "release",
        )

    def test_parse_ssh_url_has_no_branch(self) -> None:
        assert _parse_repo_url("git@github.com:acme/billing.git") == ("git@github.com:acme/billing.git", None)

    def test_slug(self) -> None:
        assert _repo_slug("https://github.com/acme/billing.git") == "acme-billing"

    def test_target_name_differs_per_branch(self) -> None:
        assert clone_target_name("https://github.com/acme/billing") != clone_target_name(
            "https://github.com/acme/billing:release"
        )

    def test_clone_passes_depth_and_branch(self, tmp_path) -> None:
        with patch("doc_interviewer.materials.git_utils.porcelain.clone") as clone:
            target = clone_repo("https://github.com/acme/billing:release", tmp_path, target_name="x")
        assert target == tmp_path / "repos" / "x"
        clone.assert_called_once_with(
            "https://github.com/acme/billing", str(target), depth=1, branch="release"
        )

    def test_existing_clone_is_reused(self, tmp_path) -> None:
        (tmp_path / "repos" / "x").mkdir(parents=True)
        with patch("doc_interviewer.materials.git_utils.porcelain.clone") as clone:
            clone_repo("https://github.com/acme/billing", tmp_path, target_name="x")
        clone.assert_not_called()
