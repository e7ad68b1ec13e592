# errors.py
"""Exception taxonomy shared by the job engine and the file operations."""


class JobError(Exception):
    pass


class PathTraversalError(JobError):
    """An untrusted path resolves outside of its destination root."""

    def __init__(self, path: str):
        super().__init__(f"illegal file path: {path}")
        self.path = path


class UnsupportedFormatError(JobError):
    def __init__(self, extension: str):
        super().__init__(f"unsupported format: {extension or '(none)'}")
        self.extension = extension


class FetchError(JobError):
    pass


class ExtractionError(JobError):
    pass


class RemuxError(JobError):
    pass


# --- registry misuse ---------------------------------------------------------

class DuplicateJobError(JobError):
    pass


class InvalidTransitionError(JobError):
    pass
