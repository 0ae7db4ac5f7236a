"""Print Rust crates from a git repository as PDFs for code review."""

__version__ = "0.1.0"

__all__ = ["__version__"]
