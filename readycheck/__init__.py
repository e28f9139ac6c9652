"""readycheck: readiness verification for the PDF conversion service."""

__version__ = "0.1.0"
