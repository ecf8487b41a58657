# Direct-run wrapper for checkouts without an installed console script.
# Preferred entry: commit-sleuth <file_path> <search_description> ...
# Equivalent: python -m commit_sleuth.cli <file_path> <search_description> ...
import sys

from commit_sleuth.cli import main


if __name__ == "__main__":
    sys.exit(main())
