"""Build orchestration module.

This module handles:
- Composing compiler and doc-generator commands
- Running external tools
- Artifact builders
- Sub-project coordination
- The two-pass build service
"""

# No re-exports: incbuild.manifest.generator imports builds.runner, and
# builds.service imports incbuild.manifest. Import submodules directly.
