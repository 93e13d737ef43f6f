"""Exception hierarchy.

Every error carries a human-readable message and is meant to be caught and
presented by the caller; nothing in the package terminates the process.
"""


class SpriteStudioError(Exception):
    """Base class for all recoverable errors raised by the package."""


# Not-found

class NotFoundError(SpriteStudioError, LookupError):
    pass


class FrameNotFoundError(NotFoundError):
    def __init__(self, index: int):
        super().__init__(f"Frame {index} not found")
        self.index = index


class CharacterNotFoundError(NotFoundError):
    pass


class AnimationNotFoundError(NotFoundError):
    pass


class RotationNotFoundError(NotFoundError):
    pass


# Malformed input

class MalformedInputError(SpriteStudioError, ValueError):
    pass


class MalformedPayloadError(MalformedInputError):
    """Embedded image data could not be decoded."""


class DocumentParseError(MalformedInputError):
    """A project document is not valid JSON or has the wrong shape."""


# I/O

class SpriteIOError(SpriteStudioError):
    def __init__(self, message: str, path=None):
        super().__init__(message)
        self.path = path


class ProjectIOError(SpriteIOError):
    pass


class ExportWriteError(SpriteIOError):
    pass


# Preconditions

class PreconditionError(SpriteStudioError):
    pass


class EmptyAnimationError(PreconditionError):
    def __init__(self, name: str):
        super().__init__(f"Animation '{name}' has no frames")
        self.name = name


class DuplicateNameError(SpriteStudioError, ValueError):
    pass
