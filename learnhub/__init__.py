"""learnhub: browse a subject/category/file corpus of markdown study notes."""

__version__ = "0.1.0"
