"""Errors raised by the integrations (object storage, SMTP)."""
from __future__ import annotations


class MutualHelpError(Exception):
    """Base class for application errors."""


class StorageError(MutualHelpError):
    """Object storage refused or failed an operation."""


class MailError(MutualHelpError):
    """The SMTP relay could not deliver a message."""


class CleanupError(MutualHelpError):
    """A step of the pre-delete cleanup failed; earlier steps stay committed."""
