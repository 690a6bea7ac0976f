class PackPromptError(Exception):
    """Base class for packprompt-specific errors."""


# Archive format (always fatal on unpack)
class ArchiveFormatError(PackPromptError):
    pass


class MalformedHeaderError(ArchiveFormatError):
    pass


class PayloadDecodeError(ArchiveFormatError):
    pass


class MissingEndMarkerError(ArchiveFormatError):
    pass


# Security
class UnsafePathError(PackPromptError):
    pass
