"""Exception types raised by Boxmark."""


class BoxmarkError(Exception):
    """Base class for Boxmark errors."""


class AnnotationFileError(BoxmarkError):
    """An annotation file could not be read or written."""
