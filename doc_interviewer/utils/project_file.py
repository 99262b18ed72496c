"""Classify codebase files by name: project descriptors and files not worth reading."""

# Binary and data extensions that carry nothing an analyst could cite
_EXCLUDED_EXTENSIONS: frozenset[str] = frozenset({
    # Images
    ".png", ".jpg", ".jpeg", ".gif", ".bmp", ".tiff", ".webp", ".ico", ".svg",
    # Media
    ".mp4", ".mov", ".avi", ".mkv", ".webm", ".mp3", ".wav", ".ogg", ".flac",
    # Fonts
    ".ttf", ".otf", ".woff", ".woff2", ".eot",
    # Archives
    ".zip", ".tar", ".gz", ".bz2", ".xz", ".7z", ".rar", ".tgz",
    # Compiled
    ".exe", ".dll", ".so", ".dylib", ".a", ".o", ".obj",
    ".pyc", ".pyo", ".class", ".jar", ".war", ".wasm",
    # Office documents and databases
    ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx",
    ".db", ".sqlite", ".sqlite3",
    ".bin", ".dat", ".iso", ".img", ".dmg",
    ".csv", ".parquet", ".ipynb",
})

# Lock and checksum files: generated, long, and never the source of a requirement
_SCAN_EXCLUDED_FILE_NAMES: frozenset[str] = frozenset({
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
    "bun.lockb",
    "Pipfile.lock",
    "poetry.lock",
    "uv.lock",
    "Cargo.lock",
    "go.sum",
    "Gemfile.lock",
    "composer.lock",
    "LICENSE",
    "LICENSE.txt",
})

# Files that describe how a project is built, configured, run and tested
_PROJECT_FILE_NAMES: frozenset[str] = frozenset({
    # JavaScript / Node
    "package.json",
    "tsconfig.json",
    # Python
    "pyproject.toml",
    "setup.py",
    "setup.cfg",
    "Pipfile",
    "requirements.txt",
    # Go
    "go.mod",
    "go.work",
    # Rust
    "Cargo.toml",
    # JVM
    "pom.xml",
    "build.gradle",
    "build.gradle.kts",
    # Ruby / PHP
    "Gemfile",
    "composer.json",
    # Build
    "Makefile",
    "makefile",
    "CMakeLists.txt",
    "Justfile",
    # Containers / ops
    "Dockerfile",
    "dockerfile",
    "docker-compose.yml",
    "docker-compose.yaml",
    ".env.example",
})


def is_project_file(file_name: str) -> bool:
    """
    Return True if the file describes how the project is built, configured or run.
    Lock files are not project files; see is_scan_excluded_file.
    """
    if not file_name or not file_name.strip():
        return False
    name = file_name.strip()
    if name in _PROJECT_FILE_NAMES:
        return True
    if name.endswith(".csproj") or name.endswith(".fsproj"):
        return True
    return False


def is_scan_excluded_file(file_name: str) -> bool:
    """
    Return True if the file should not be read during analysis:
    dotfiles, lock files and binary formats (by extension).
    """
    if not file_name or not file_name.strip():
        return False
    name = file_name.strip()
    if name in _PROJECT_FILE_NAMES:
        return False
    if name.startswith("."):
        return True
    if name in _SCAN_EXCLUDED_FILE_NAMES:
        return True
    ext = "." + name.rsplit(".", 1)[-1].lower() if "." in name else ""
    return ext in _EXCLUDED_EXTENSIONS
