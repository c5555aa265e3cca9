"""Building blocks for rewriting Git history: path quoting, text replacement, Git queries, options and command lines."""

__version__ = "0.1.0"