"""StreamClipper client core: state stores and backend workflow."""

from .version import __version__
