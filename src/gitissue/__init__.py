"""gitissue - distributed issue tracking stored in a git repository."""

from gitissue._version import version as __version__

__all__ = ["__version__"]
