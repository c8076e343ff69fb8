"""wiwo: a user's GitHub activity timeline, backfilled from git history when needed."""

__version__ = "0.3.0"
