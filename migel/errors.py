"""Exceptions raised by the I/O collaborators around the matcher."""


class MigelError(RuntimeError):
    """Base class for errors that abort a CLI run."""


class SourceError(MigelError):
    """Download or parsing of the firstbase/MiGeL sources failed."""


class DeployError(MigelError):
    """Transfer of the database to the remote host failed."""
