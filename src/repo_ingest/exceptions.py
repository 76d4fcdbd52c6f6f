from dataclasses import dataclass


@dataclass(frozen=True)
class RepoIngestError(Exception):
    """Base exception for errors in the repo_ingest package."""

    message: str = "Repository ingestion failed."

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class InvalidPatternError(RepoIngestError):
    """Raised when an include/exclude pattern contains forbidden characters."""

    pattern: str = ""
    message: str = "Pattern contains invalid characters."

    def __str__(self) -> str:
        return f"Invalid pattern: '{self.pattern}'"


@dataclass(frozen=True)
class InvalidURLError(RepoIngestError):
    """Raised when a repository URL cannot be parsed."""

    url: str = ""
    message: str = "Invalid repository URL."


@dataclass(frozen=True)
class UnknownHostError(InvalidURLError):
    """Raised when a URL points to a host outside the known Git hosts."""

    host: str = ""
    message: str = "Unknown domain in URL."


@dataclass(frozen=True)
class HostNotFoundError(RepoIngestError):
    """Raised when no known host serves the ``owner/repo`` pair."""

    user_name: str = ""
    repo_name: str = ""
    message: str = "Could not find a valid repository host."


@dataclass(frozen=True)
class RepositoryNotFoundError(RepoIngestError):
    """Raised when the remote repository does not exist or is private."""

    url: str = ""
    message: str = "Repository not found, ensure it is public."


@dataclass(frozen=True)
class IngestionLimitError(RepoIngestError):
    """Raised when a scan crosses one of the global ceilings."""


@dataclass(frozen=True)
class MaxFilesReachedError(IngestionLimitError):
    """Raised when the number of scanned files exceeds the ceiling."""

    max_files: int = 0
    message: str = "Maximum number of files reached."


@dataclass(frozen=True)
class MaxFileSizeReachedError(IngestionLimitError):
    """Raised when the cumulative size of scanned files exceeds the ceiling."""

    max_size: int = 0
    message: str = "Maximum total size reached."


@dataclass(frozen=True)
class GitError(RepoIngestError):
    """Base exception for failures of the external git tooling."""


@dataclass(frozen=True)
class GitNotInstalledError(GitError):
    """Raised when the git executable cannot be invoked."""

    message: str = "Git is not installed or not accessible."


@dataclass(frozen=True)
class GitCommandError(GitError):
    """Raised when a git command fails."""

    command: str = ""
    returncode: int = 0
    stdout: str = ""
    stderr: str = ""
    message: str = "Git command failed."


@dataclass(frozen=True)
class SourceNotFoundError(RepoIngestError):
    """Raised when the resolved ingestion path does not exist."""

    message: str = "The requested source cannot be found."


@dataclass(frozen=True)
class NotATextFileError(RepoIngestError):
    """Raised when a single-file ingestion targets a binary or special file."""

    message: str = "The specified path is not a text file."


@dataclass(frozen=True)
class NoFilesFoundError(RepoIngestError):
    """Raised when a directory scan produces no tree at all."""

    message: str = "No files found."
