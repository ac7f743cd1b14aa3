class WorkdigestError(Exception):
    """Base class for errors raised by the engine"""


class NotFoundError(WorkdigestError):
    """An unknown summary, meeting or identity was requested"""


class NoRawInputError(WorkdigestError):
    """Regeneration was requested for a record that kept no raw input"""


class CollaboratorUnavailableError(WorkdigestError):
    """A source client or the narrative generator failed or did not respond"""


class GenerationFailedError(WorkdigestError):
    """The initial narrative step failed; nothing was persisted and the call may be retried"""


class DuplicateSummaryError(WorkdigestError):
    """Another writer already persisted a summary for the same key"""

    def __init__(self, key: tuple) -> None:
        super().__init__(f'Summary already exists for key {key!r}')
        self.key = key
