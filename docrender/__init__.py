"""docrender - command-line front end for the document PDF pipeline."""

__version__ = "0.1.0"

from .main import main

__all__ = ['main']
