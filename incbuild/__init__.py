"""incbuild - Dependency-aware incremental builds for a compiled library.

This package decides which artifacts of a library build (the library itself,
an example binary, documentation and a self-test binary) are stale, keeps the
dependency manifest that drives that decision up to date, and coordinates a
nested sub-project the library links against.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
