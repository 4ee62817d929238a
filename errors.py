from __future__ import annotations


class QcmError(Exception):
    pass


class FormatError(QcmError):
    """The input container (xlsx, docx) could not be read at all."""


class ValidationError(QcmError, ValueError):
    """Required columns/fields are missing; the whole load is refused."""


class ResolutionError(QcmError):
    """A single question could not be built; the batch carries on without it."""


class TransportError(QcmError, RuntimeError):
    """The Moodle web service could not be reached or answered with an exception."""


class AttachmentError(ValidationError):
    """An image was refused (wrong type or too large); nothing is recorded."""
