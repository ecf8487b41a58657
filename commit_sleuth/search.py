"""The per-commit relevance search over a file's history."""

import logging
import time
from dataclasses import dataclass

from commit_sleuth.errors import ClassifierError, DiffUnavailable, PathNotFound
from commit_sleuth.miner import commit_url, get_file_diff, origin_fetch_url, resolve_historical_path, walk_history
from commit_sleuth.utils import NullProgress

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchResult:
    commit_hash: str
    diff_url: str
    description: str
    diff: str
    summary: str = ""
    author: str = ""
    date: str = ""


def search_history(
    location,
    query,
    classifier,
    progress=None,
    commit_range=None,
    delay=1.0,
    sleep=time.sleep,
):
    """Classify every commit diff of the file and keep the relevant ones.

    Commits are processed one at a time, newest first. A commit is skipped when
    it has no parent, when the file cannot be found in its tree, when the diff
    cannot be produced or is blank, or when the classifier fails for it. After
    each classifier call the loop pauses for `delay` seconds.

    Returns the relevant results in walk order.
    """
    progress = progress or NullProgress()
    commits = walk_history(location, commit_range=commit_range)
    logger.debug("Found %d commits on %s (including renames)", len(commits), location.relative_path)

    fetch_url = origin_fetch_url(location.repo)
    results = []
    total = len(commits)

    for index, commit in enumerate(commits):
        progress.report(index + 1, total, len(results), commit_hash=commit.hexsha)

        if commit.parent is None:
            logger.debug("Skipping %s (no parent to diff against)", commit.hexsha)
            continue

        try:
            path = resolve_historical_path(location, commit)
        except PathNotFound as exc:
            logger.debug("%s", exc)
            continue
        logger.debug("Found file at historical path: %s", path)

        try:
            diff = get_file_diff(location, commit, path)
        except DiffUnavailable as exc:
            logger.warning("%s", exc)
            continue

        if not diff.strip():
            logger.debug("No changes found in commit %s for file %s", commit.hexsha, path)
            continue

        try:
            verdict = classifier.classify(query, diff)
        except ClassifierError as exc:
            logger.warning("Skipping %s, classifier failed: %s", commit.hexsha, exc)
            verdict = None
        if delay > 0:
            sleep(delay)

        if verdict is not None and verdict.relevant:
            results.append(
                SearchResult(
                    commit_hash=commit.hexsha,
                    diff_url=commit_url(fetch_url, commit.hexsha),
                    description=verdict.explanation,
                    diff=diff,
                    summary=commit.summary,
                    author=commit.author,
                    date=commit.date,
                )
            )
            logger.debug("Relevant: %s %s", commit.hexsha, commit.summary)

    progress.report(total, total, len(results))
    return results
