"""diagtest: golden-file harness for analyzer diagnostics."""

__version__ = "0.1.0"
