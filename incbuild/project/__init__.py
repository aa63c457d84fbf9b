"""Project description module.

This module handles:
- Pydantic schema for the project file
- Loading the project file from YAML/JSON
"""

from incbuild.project.io import load_project
from incbuild.project.schema import ExampleSchema, ProjectSchema, SubprojectSchema

__all__ = ["ExampleSchema", "ProjectSchema", "SubprojectSchema", "load_project"]
