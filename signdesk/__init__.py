"""SignDesk -- MD5 request signing and a signed multipart API workbench."""

__version__ = "0.1.0"
