"""Error types raised while searching a file's history."""


class SleuthError(Exception):
    """Base class for commit-sleuth errors."""


class UsageError(SleuthError):
    """Missing or invalid command line arguments."""


class TargetFileNotFound(SleuthError):
    """The file to search does not exist on disk."""

    def __init__(self, path):
        self.path = path
        super().__init__(f"File does not exist: {path}")


class NotAGitRepository(SleuthError):
    def __init__(self, path):
        self.path = path
        super().__init__(f"Not a git repository: {path}")


class PathNotFound(SleuthError):
    """The file has no entry in a commit's tree."""

    def __init__(self, commit_hash, path):
        self.commit_hash = commit_hash
        self.path = path
        super().__init__(f"Could not find {path} in commit {commit_hash}")


class DiffUnavailable(SleuthError):
    """`git diff` could not produce a diff for a commit."""

    def __init__(self, commit_hash, reason):
        self.commit_hash = commit_hash
        self.reason = reason
        super().__init__(f"Failed to get diff for {commit_hash}: {reason}")


class ClassifierError(SleuthError):
    """The language model call failed or returned an unusable answer."""
