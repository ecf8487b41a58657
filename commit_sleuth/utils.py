"""Terminal presentation: diff colors, live status, result browsing."""

import logging

import click
from rich.console import Console, Group
from rich.live import Live
from rich.rule import Rule
from rich.text import Text

logger = logging.getLogger(__name__)

ADDITION_STYLE = "green"
DELETION_STYLE = "red"
HUNK_STYLE = "cyan"

# click.getchar returns the whole escape sequence for arrow keys.
LEFT_KEYS = ("\x1b[D", "\xe0K", "\x00K")
RIGHT_KEYS = ("\x1b[C", "\xe0M", "\x00M")
QUIT_KEYS = ("q", "Q", "\x03")


def colorize_line(line):
    """Style one diff line by its leading characters."""
    if line.startswith("+"):
        return Text(line, style=ADDITION_STYLE)
    if line.startswith("-"):
        return Text(line, style=DELETION_STYLE)
    if line.startswith("@@ "):
        return Text(line, style=HUNK_STYLE)
    return Text(line)


def colorize_diff(diff):
    return Text("\n").join(colorize_line(line) for line in (diff or "").split("\n"))


def step_index(index, delta, count):
    """Move through `count` items, wrapping at both ends."""
    if count <= 0:
        return 0
    return (index + delta) % count


class NullProgress:
    """Progress reporter that shows nothing."""

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False

    def report(self, current, total, match_count, commit_hash=""):
        pass


class LoggingProgress(NullProgress):
    """Progress as debug log lines, for non-interactive output."""

    def report(self, current, total, match_count, commit_hash=""):
        logger.debug(
            "Progress: checking commit %d/%d %s (matches found: %d)",
            current,
            total,
            commit_hash,
            match_count,
        )


class TerminalProgress(NullProgress):
    """Status region redrawn in place while the history is walked."""

    def __init__(self, query, console=None):
        self.query = query
        self.console = console or Console()
        self._live = None

    def __enter__(self):
        self._live = Live(
            self.render(0, 0, 0),
            console=self.console,
            refresh_per_second=8,
            transient=True,
        )
        self._live.start()
        return self

    def __exit__(self, *exc_info):
        if self._live is not None:
            self._live.stop()
            self._live = None
        return False

    def render(self, current, total, match_count, commit_hash=""):
        return Group(
            Text(f"Progress: checking commit {current}/{total}", style="blue"),
            Text(f"Current commit: {commit_hash}", style="dim"),
            Text(f"Query: {self.query}", style="yellow"),
            Text(f"Matches found: {match_count}", style="green"),
            Rule(style="dim"),
        )

    def report(self, current, total, match_count, commit_hash=""):
        if self._live is not None:
            self._live.update(self.render(current, total, match_count, commit_hash), refresh=True)


def render_summary(console, query, count):
    console.print(Text("✨ Search Complete!", style="bold green"))
    console.print(Text(f"Query: {query}", style="yellow"))
    console.print(Text(f"Found {count} relevant changes", style="blue"))
    console.print()


def render_result(console, result, index, count):
    console.print(Text(f"Result {index + 1}/{count}:", style="bold"))
    console.print(Text(f"Commit: {result.commit_hash}", style="dim"))
    if result.author:
        console.print(Text(f"Author: {result.author}", style="dim"))
    if result.date:
        console.print(Text(f"Date: {result.date}", style="dim"))
    if result.summary:
        console.print(Text(f"Message: {result.summary}", style="dim"))
    console.print(Text(f"URL: {result.diff_url}", style="dim"))
    console.print(Text(f"Description: {result.description}", style="dim"))
    console.print()
    console.print(Text("Changes:", style="dim"))
    console.print(colorize_diff(result.diff))
    console.print(Rule(style="dim"))


def print_results(console, query, results):
    """Print every result once, for output that is not a terminal."""
    render_summary(console, query, len(results))
    for index, result in enumerate(results):
        render_result(console, result, index, len(results))


class ResultBrowser:
    """Show one result at a time; arrows move, `q` quits."""

    def __init__(self, results, query, console=None, getchar=None):
        self.results = list(results)
        self.query = query
        self.console = console or Console()
        self.getchar = getchar or click.getchar
        self.index = 0

    def render(self):
        self.console.clear()
        render_summary(self.console, self.query, len(self.results))
        self.console.print(Text("(Use ← → arrow keys to navigate, press 'q' to quit)", style="dim"))
        self.console.print()
        render_result(self.console, self.results[self.index], self.index, len(self.results))

    def handle_key(self, key):
        """Apply one keypress; returns False when browsing should stop."""
        if key in QUIT_KEYS:
            return False
        if key in LEFT_KEYS:
            self.index = step_index(self.index, -1, len(self.results))
        elif key in RIGHT_KEYS:
            self.index = step_index(self.index, 1, len(self.results))
        return True

    def run(self):
        if not self.results:
            return
        self.render()
        while True:
            try:
                key = self.getchar()
            except (KeyboardInterrupt, EOFError):
                break
            previous = self.index
            if not self.handle_key(key):
                break
            if self.index != previous:
                self.render()
