__version__ = "2.1.0"
__git_revision__ = ""
