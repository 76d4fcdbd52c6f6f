from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum, auto
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from repo_ingest.exceptions import MaxFileSizeReachedError, MaxFilesReachedError

NON_TEXT_SENTINEL = "[Non-text file]"
CONTENT_TOO_LARGE = "[Content ignored: file too large]"
SEPARATOR = "=" * 32
TREE_HEADER = "Directory structure:\n"
DEFAULT_BRANCHES = frozenset({"main", "master"})
BINARY_SNIFF_BYTES = 1024

KNOWN_GIT_HOSTS: tuple[str, ...] = (
    "github.com",
    "gitlab.com",
    "bitbucket.org",
    "gitea.com",
    "codeberg.org",
    "gist.github.com",
)

DEFAULT_IGNORE_PATTERNS: frozenset[str] = frozenset({
    # Python
    "*.pyc",
    "*.pyo",
    "*.pyd",
    "__pycache__",
    ".pytest_cache",
    ".coverage",
    ".tox",
    ".nox",
    ".mypy_cache",
    ".ruff_cache",
    ".hypothesis",
    "poetry.lock",
    "Pipfile.lock",
    # JavaScript
    "node_modules",
    "bower_components",
    "package-lock.json",
    "yarn.lock",
    ".npm",
    ".yarn",
    ".pnpm-store",
    "bun.lock",
    "bun.lockb",
    # Java
    "*.class",
    "*.jar",
    "*.war",
    "*.ear",
    "*.nar",
    ".gradle/*",
    "build/*",
    ".settings/*",
    ".classpath",
    "gradle-app.setting",
    "*.gradle",
    ".project",
    # C/C++
    "*.o",
    "*.obj",
    "*.dll",
    "*.dylib",
    "*.exe",
    "*.lib",
    "*.out",
    "*.a",
    "*.pdb",
    # Swift/Xcode
    ".build/*",
    "*.xcodeproj/*",
    "*.xcworkspace/*",
    "*.pbxuser",
    "*.mode1v3",
    "*.mode2v3",
    "*.perspectivev3",
    "*.xcuserstate",
    "xcuserdata/*",
    ".swiftpm/*",
    # Ruby
    "*.gem",
    ".bundle/*",
    "vendor/bundle",
    "Gemfile.lock",
    ".ruby-version",
    ".ruby-gemset",
    ".rvmrc",
    # Rust
    "Cargo.lock",
    "**/*.rs.bk",
    "target/*",
    # Go
    "pkg/*",
    # .NET
    "obj/*",
    "*.suo",
    "*.user",
    "*.userosscache",
    "*.sln.docstates",
    "packages/*",
    "*.nupkg",
    "bin/*",
    # Version control
    ".git",
    ".svn",
    ".hg",
    ".gitignore",
    ".gitattributes",
    ".gitmodules",
    # Images and media
    "*.svg",
    "*.png",
    "*.jpg",
    "*.jpeg",
    "*.gif",
    "*.ico",
    "*.pdf",
    "*.mov",
    "*.mp4",
    "*.mp3",
    "*.wav",
    # Virtual environments
    "venv",
    ".venv",
    "env",
    ".env",
    "virtualenv",
    # IDEs and editors
    ".idea",
    ".vscode",
    ".vs",
    "*.swo",
    "*.swn",
    ".settings",
    "*.sublime-*",
    # Temporary and cache files
    "*.log",
    "*.bak",
    "*.swp",
    "*.tmp",
    "*.temp",
    ".cache",
    ".sass-cache",
    ".eslintcache",
    ".DS_Store",
    "Thumbs.db",
    "desktop.ini",
    # Build output
    "build",
    "dist",
    "out",
    "*.egg-info",
    "*.egg",
    "*.whl",
    "*.so",
    "site-packages",
    ".docusaurus",
    ".next",
    ".nuxt",
    # Minified and bundled assets
    "*.min.js",
    "*.min.css",
    "*.map",
    # Terraform
    ".terraform",
    "*.tfstate*",
    # Dependencies in various languages
    "vendor/*",
    # Fonts
    "*.ttf",
    "*.otf",
    "*.woff",
    "fonts/*",
    # Lockfiles
    "*.lock.json",
    "*.lock",
    "*.lockb",
    "*lock.yaml",
    "*lock.yml",
    "*lock.json5",
    "*lock.jsonc",
    # Generated UI kits and docs
    "src/components/ui/*",
    "*.mdx",
})


class NodeType(StrEnum):
    """Kind of filesystem entry held by a :class:`Node`."""

    FILE = auto()
    DIRECTORY = auto()


class Node(BaseModel):
    """One filesystem entry of the scanned tree.

    Attributes:
        name: Display name (the link name for symlinked entries).
        type: File or directory.
        size: Size in bytes; for directories, the sum over the filtered subtree.
        path: Absolute path as reached during traversal.
        children: Sorted children (directories only).
        content: Text content, or ``NON_TEXT_SENTINEL`` (files only).
        file_count: Number of files in the filtered subtree (directories only).
        dir_count: Number of directories in the filtered subtree (directories only).
        ignore_content: Whether a file was dropped here by the include filter.
    """

    name: str
    type: NodeType
    size: int = Field(default=0, ge=0)
    path: Path
    children: list[Node] = Field(default_factory=list)
    content: str | None = None
    file_count: int = 0
    dir_count: int = 0
    ignore_content: bool = False

    @property
    def is_file(self) -> bool:
        return self.type is NodeType.FILE

    @property
    def is_dir(self) -> bool:
        return self.type is NodeType.DIRECTORY


class CloneConfig(BaseModel):
    """Parameters handed to :func:`repo_ingest.git_operations.clone_repo`."""

    model_config = ConfigDict(frozen=True)

    url: str
    local_path: Path
    commit: str | None = None
    branch: str | None = None
    subpath: str = "/"

    @property
    def partial_clone(self) -> bool:
        """A subpath narrower than the root asks for a sparse, blob-less clone."""
        return self.subpath != "/"


class IngestionQuery(BaseModel):
    """Resolved target of one ingestion.

    Built once by :func:`repo_ingest.query_parsing.parse_query`; afterwards only
    ``ignore_patterns`` grows, when a ``.gitingest`` file adds entries.
    """

    user_name: str | None = None
    repo_name: str | None = None
    local_path: Path
    url: str | None = None
    slug: str
    id: str
    subpath: str = "/"
    type: str | None = None
    branch: str | None = None
    commit: str | None = None
    max_file_size: int = Field(..., gt=0)
    ignore_patterns: set[str] = Field(default_factory=set)
    include_patterns: set[str] | None = None

    def extract_clone_config(self) -> CloneConfig:
        """Build the clone parameters for a remote query.

        Raises:
            ValueError: if the query has no remote URL.

        Returns:
            CloneConfig: the parameters for the repository fetcher.
        """
        if not self.url:
            msg = "The 'url' attribute is required to clone a repository."
            raise ValueError(msg)
        return CloneConfig(
            url=self.url,
            local_path=self.local_path,
            commit=self.commit,
            branch=self.branch,
            subpath=self.subpath,
        )


@dataclass
class IngestionStats:
    """Counters shared by every task of one scan.

    ``register_file`` never suspends, so under the event loop the ceiling check
    and the increment happen as one step.
    """

    max_files: int
    max_total_size: int
    total_files: int = 0
    total_size: int = 0

    def limit_reached(self) -> bool:
        return self.total_files >= self.max_files or self.total_size >= self.max_total_size

    def register_file(self, size: int) -> None:
        """Account for one more file of ``size`` bytes.

        Raises:
            MaxFileSizeReachedError: if the cumulative size would exceed the ceiling.
            MaxFilesReachedError: if the file count now exceeds the ceiling.
        """
        if self.total_size + size > self.max_total_size:
            raise MaxFileSizeReachedError(
                max_size=self.max_total_size,
                message=f"Maximum total size {self.max_total_size} reached",
            )
        self.total_files += 1
        self.total_size += size
        if self.total_files > self.max_files:
            raise MaxFilesReachedError(
                max_files=self.max_files,
                message=f"Maximum number of files {self.max_files} reached",
            )
