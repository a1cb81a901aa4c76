"""Errors raised by the import formats."""


class ImportFormatError(ValueError):
    """Imported content is not in a format we can read."""
