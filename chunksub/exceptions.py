"""Custom Exceptions for the ChunkSub application."""

class ChunkSubError(Exception):
    """Base class for exceptions in this module."""
    pass

class ConfigurationError(ChunkSubError):
    """Exception raised for errors in configuration loading."""
    pass

class DecodeError(ChunkSubError):
    """Exception raised when input bytes hold no decodable audio track."""
    pass

class RemoteCallError(ChunkSubError):
    """Exception raised for any failure of the transcription provider."""
    pass

class CancelledByUser(ChunkSubError):
    """Raised when a run is stopped at a chunk boundary on user request. Not a failure."""
    pass

class EmptyResultError(ChunkSubError):
    """Exception raised when a finished run produced no usable captions."""
    pass

class FormattingError(ChunkSubError):
    """Exception raised for errors during caption formatting."""
    pass

class FileSystemError(ChunkSubError):
    """Exception raised for file system related errors (permissions, not found etc)."""
    pass
