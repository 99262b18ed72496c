"""Materials source: local directories and git URLs, read only."""

from .source import MaterialFile, Materials, load_materials
from .scanner import EXCLUDED_FOLDERS, scan_files
from .git_utils import clone_repo, is_git_url

__all__ = [
    "EXCLUDED_FOLDERS",
    "MaterialFile",
    "Materials",
    "clone_repo",
    "is_git_url",
    "load_materials",
    "scan_files",
]
