"""projreview: Project Review Manager."""

__version__ = "0.1.0"

from projreview.project import Project
from projreview.index import ProjectIndex
from projreview.app import App

__all__ = ["App", "Project", "ProjectIndex"]
