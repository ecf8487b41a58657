"""Shared fixtures: throwaway git repositories and a scripted classifier."""

import pytest
from git import Repo

from commit_sleuth.errors import ClassifierError
from commit_sleuth.llm import RelevanceVerdict


class RepoBuilder:
    """Small helper that writes files and commits them with the git CLI."""

    def __init__(self, root):
        self.root = root
        self.repo = Repo.init(root)
        with self.repo.config_writer() as writer:
            writer.set_value("user", "name", "Test Author")
            writer.set_value("user", "email", "test@example.com")
            writer.set_value("commit", "gpgsign", "false")

    def commit_file(self, rel_path, content, message):
        path = self.root / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        self.repo.git.add(rel_path)
        self.repo.git.commit("-m", message)
        return self.repo.head.commit.hexsha

    def rename(self, old_path, new_path, message):
        (self.root / new_path).parent.mkdir(parents=True, exist_ok=True)
        self.repo.git.mv(old_path, new_path)
        self.repo.git.commit("-m", message)
        return self.repo.head.commit.hexsha

    def path(self, rel_path):
        return str(self.root / rel_path)


class ScriptedClassifier:
    """Records calls; relevance and failures decided by predicates on the diff."""

    def __init__(self, relevant_when=None, fail_when=None):
        self.relevant_when = relevant_when or (lambda diff: False)
        self.fail_when = fail_when or (lambda diff: False)
        self.calls = []

    def classify(self, query, diff):
        self.calls.append((query, diff))
        if self.fail_when(diff):
            raise ClassifierError("model unavailable")
        relevant = bool(self.relevant_when(diff))
        return RelevanceVerdict(relevant=relevant, explanation="relevant" if relevant else "unrelated")


class RecordingProgress:
    def __init__(self):
        self.reports = []

    def report(self, current, total, match_count, commit_hash=""):
        self.reports.append((current, total, match_count, commit_hash))


@pytest.fixture
def repo_builder(tmp_path):
    return RepoBuilder(tmp_path / "repo")


@pytest.fixture
def three_commit_repo(repo_builder):
    """notes.txt with three commits; only the newest adds 'line three'."""
    first = repo_builder.commit_file("notes.txt", "line one\n", "Add notes")
    second = repo_builder.commit_file("notes.txt", "line one\nline two\n", "Add second line")
    third = repo_builder.commit_file("notes.txt", "line one\nline two\nline three\n", "Add third line")
    return repo_builder, [first, second, third]
