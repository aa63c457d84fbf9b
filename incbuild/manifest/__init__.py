"""Dependency manifest module.

This module handles:
- Parsing the compiler's raw dependency listing
- Transforming it so every artifact built from one root shares it
- Persisting, validating and regenerating the manifest
"""

from incbuild.manifest.store import Manifest, manifest_filename, read_manifest

__all__ = ["Manifest", "manifest_filename", "read_manifest"]
