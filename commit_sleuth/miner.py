"""Git history walking, historical path lookup and per-file diffs."""
import logging
import os
import re
from dataclasses import dataclass, replace
from typing import Optional

from git import Repo
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from commit_sleuth.errors import DiffUnavailable, NotAGitRepository, PathNotFound, TargetFileNotFound

logger = logging.getLogger(__name__)

_RECORD_SEP = "\x1e"
_FIELD_SEP = "\x1f"
_LOG_FORMAT = f"{_RECORD_SEP}%H{_FIELD_SEP}%P{_FIELD_SEP}%an{_FIELD_SEP}%ad{_FIELD_SEP}%s"

_GITHUB_REMOTE = re.compile(r"github\.com[:/]([^/]+/[^/]+?)(?:\.git)?$")

_C_ESCAPES = {"a": 7, "b": 8, "t": 9, "n": 10, "v": 11, "f": 12, "r": 13, '"': 34, "\\": 92}


@dataclass(frozen=True)
class Commit:
    hexsha: str
    parent: Optional[str]
    author: str = ""
    date: str = ""
    summary: str = ""
    logged_path: Optional[str] = None


@dataclass
class FileLocation:
    """A file on disk and the repository that tracks it."""

    absolute_path: str
    relative_path: str
    root: str
    repo: Repo

    @property
    def base_name(self):
        return os.path.basename(self.relative_path)


def locate_file(file_path) -> FileLocation:
    """Resolve the target file and open the repository containing it."""
    absolute_path = os.path.abspath(file_path)
    if not os.path.exists(absolute_path):
        raise TargetFileNotFound(absolute_path)

    file_dir = os.path.dirname(absolute_path)
    try:
        repo = Repo(file_dir, search_parent_directories=True)
    except (NoSuchPathError, InvalidGitRepositoryError):
        raise NotAGitRepository(file_dir) from None

    root = repo.git.rev_parse("--show-toplevel").strip()
    # Compare real paths so symlinked temp dirs resolve to the same root.
    relative_path = os.path.relpath(os.path.realpath(absolute_path), os.path.realpath(root))
    return FileLocation(
        absolute_path=absolute_path,
        relative_path=relative_path.replace("\\", "/"),
        root=root,
        repo=repo,
    )


def walk_history(location: FileLocation, commit_range=None) -> list[Commit]:
    """List commits that touched the file (following renames), newest first."""
    args = ["--follow", "--name-only", "--date=short", f"--format={_LOG_FORMAT}"]
    if commit_range:
        args.append(commit_range)
    args.extend(["--", location.relative_path])

    # Keep non-ASCII names verbatim; anything git still quotes is undone in parse_log.
    raw = location.repo.git(c="core.quotePath=false").log(*args)
    commits = parse_log(raw)
    if commits:
        commits[-1] = replace(commits[-1], parent=None)
    return commits


def parse_log(raw) -> list[Commit]:
    """Parse `git log` output produced with the record/field separators above."""
    commits = []
    for record in (raw or "").split(_RECORD_SEP):
        lines = record.strip("\n").splitlines()
        if not lines:
            continue
        fields = lines[0].split(_FIELD_SEP)
        if len(fields) < 5 or not fields[0]:
            continue
        hexsha, parents, author, date, summary = fields[:5]
        parent_list = parents.split()
        paths = [unquote_path(line.strip()) for line in lines[1:] if line.strip()]
        commits.append(
            Commit(
                hexsha=hexsha,
                parent=parent_list[0] if parent_list else None,
                author=author,
                date=date,
                summary=summary,
                logged_path=paths[-1] if paths else None,
            )
        )
    return commits


def unquote_path(path):
    """Undo git's C-style quoting of a path (`"caf\\303\\251.txt"` -> `café.txt`)."""
    if len(path) < 2 or not (path.startswith('"') and path.endswith('"')):
        return path
    body = path[1:-1]
    out = bytearray()
    i = 0
    while i < len(body):
        char = body[i]
        if char != "\\" or i + 1 == len(body):
            out.extend(char.encode("utf-8"))
            i += 1
            continue
        nxt = body[i + 1]
        if nxt in "01234567":
            out.append(int(body[i + 1:i + 4], 8) & 0xFF)
            i += 4
        else:
            out.append(_C_ESCAPES.get(nxt, ord(nxt)))
            i += 2
    return out.decode("utf-8", errors="surrogateescape")


def list_tree_paths(repo, commit_hash):
    """Return every blob path in a commit's snapshot."""
    raw = repo.git.ls_tree("-r", "-z", commit_hash)
    paths = []
    for entry in raw.split("\0"):
        # <mode> <type> <object>\t<path>, unquoted under -z
        _meta, sep, path = entry.partition("\t")
        if sep and path:
            paths.append(path)
    return paths


def resolve_historical_path(location: FileLocation, commit: Commit) -> str:
    """Find the path the file had at `commit`."""
    paths = list_tree_paths(location.repo, commit.hexsha)
    known = set(paths)

    for candidate in (commit.logged_path, location.relative_path):
        if candidate and candidate in known:
            return candidate

    base_name = location.base_name
    for path in paths:
        if path.rsplit("/", 1)[-1] == base_name:
            return path

    raise PathNotFound(commit.hexsha, location.relative_path)


def get_file_diff(location: FileLocation, commit: Commit, path) -> str:
    """Unified diff of one path between a commit and its parent."""
    if commit.parent is None:
        raise DiffUnavailable(commit.hexsha, "commit has no parent to diff against")
    try:
        return location.repo.git.diff(commit.parent, commit.hexsha, "--", path, no_ext_diff=True)
    except GitCommandError as exc:
        reason = (exc.stderr or "").strip() or str(exc)
        raise DiffUnavailable(commit.hexsha, reason) from exc


def origin_fetch_url(repo):
    """Fetch URL of the `origin` remote, or None."""
    origin = next((r for r in repo.remotes if r.name == "origin"), None)
    if origin is None:
        return None
    try:
        return origin.url.strip()
    except Exception as exc:
        logger.debug("Could not read origin url: %s", exc)
        return None


def commit_url(fetch_url, commit_hash):
    """GitHub permalink for a commit, falling back to the bare hash."""
    match = _GITHUB_REMOTE.search((fetch_url or "").strip())
    if match:
        return f"https://github.com/{match.group(1)}/commit/{commit_hash}"
    return f"commit: {commit_hash}"
