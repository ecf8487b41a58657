"""commit-sleuth CLI entrypoint."""

import argparse
import logging
import sys

from rich.console import Console
from rich.logging import RichHandler
from rich.text import Text

from commit_sleuth.config import PROVIDERS, ClassifierSettings, SearchConfig
from commit_sleuth.errors import SleuthError, UsageError
from commit_sleuth.llm import build_classifier
from commit_sleuth.miner import locate_file
from commit_sleuth.search import search_history
from commit_sleuth.utils import LoggingProgress, ResultBrowser, TerminalProgress, print_results

logger = logging.getLogger(__name__)

USAGE = "commit-sleuth <file_path> <search_description> [commit_range] [--debug]"


def build_parser():
    parser = argparse.ArgumentParser(
        prog="commit-sleuth",
        usage=USAGE,
        description="Find the commits in a file's history whose diff matches a description",
    )
    parser.add_argument("file_path", nargs="?", help="File whose history is searched")
    parser.add_argument("search_description", nargs="?", help="What the change you are looking for did")
    parser.add_argument("commit_range", nargs="?", default=None, help="Optional revision range, e.g. v1.0..HEAD")
    parser.add_argument("--debug", action="store_true", help="Print per-commit diagnostics")
    parser.add_argument("--provider", choices=PROVIDERS, default=None, help="Classifier backend")
    parser.add_argument("--model", default=None, help="Model name for the classifier backend")
    parser.add_argument("--delay", type=float, default=None, help="Seconds to pause after each model call")
    return parser


def parse_config(argv=None):
    """Parse arguments into a SearchConfig plus the raw namespace."""
    args = build_parser().parse_args(argv)
    if not args.file_path or not (args.search_description or "").strip():
        raise UsageError(f"Usage: {USAGE}")
    config = SearchConfig(
        file_path=args.file_path,
        query=args.search_description.strip(),
        debug=args.debug,
        commit_range=args.commit_range,
    )
    return config, args


def configure_logging(console, debug=False):
    handler = RichHandler(console=console, show_time=False, show_path=False, markup=False)
    package_logger = logging.getLogger("commit_sleuth")
    package_logger.handlers[:] = [handler]
    package_logger.setLevel(logging.DEBUG if debug else logging.WARNING)


def run(config, settings, console, interactive):
    """Search the history and present the results; returns the exit code."""
    location = locate_file(config.file_path)
    classifier = build_classifier(settings)

    if config.debug:
        console.print(
            Text.assemble(
                f"Starting analysis for {config.file_path} with description: ",
                (config.query, "bold yellow"),
            )
        )

    progress = TerminalProgress(config.query, console=console) if interactive else LoggingProgress()
    with progress:
        results = search_history(
            location,
            config.query,
            classifier,
            progress=progress,
            commit_range=config.commit_range,
            delay=settings.delay,
        )

    if interactive and results:
        ResultBrowser(results, config.query, console=console).run()
    else:
        print_results(console, config.query, results)
    return 0


def main(argv=None):
    console = Console()
    err_console = Console(stderr=True)
    try:
        config, args = parse_config(argv)
    except UsageError as exc:
        err_console.print(str(exc), markup=False, highlight=False, soft_wrap=True)
        return 1

    configure_logging(err_console if not console.is_terminal else console, debug=config.debug)

    try:
        settings = ClassifierSettings.from_env().override(
            provider=args.provider,
            model=args.model,
            delay=args.delay,
        )
        return run(config, settings, console, interactive=console.is_terminal)
    except KeyboardInterrupt:
        err_console.print("Interrupted", highlight=False, soft_wrap=True)
        return 130
    except SleuthError as exc:
        err_console.print(f"Error: {exc}", markup=False, highlight=False, soft_wrap=True)
        return 1
    except Exception as exc:
        logger.debug("Unhandled error", exc_info=True)
        err_console.print(f"Error: {exc}", markup=False, highlight=False, soft_wrap=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
