"""Ingestion error hierarchy.

Every error below is caught at the single-message boundary of the consume
loop and turned into a log line.
"""


class IngestError(Exception):
    """Base error for pipeline operations."""


class DecodeError(IngestError):
    """Message value is not UTF-8 JSON."""


class ExtractionError(IngestError):
    """Payload is valid JSON but lacks the expected novel structure."""


class WriteError(IngestError):
    """A sink failed to store a message.

    ``retryable`` is False when the sink rejected the data itself, so
    redelivering the same message cannot succeed.
    """

    def __init__(self, message: str, *, retryable: bool = True) -> None:
        self.retryable = retryable
        super().__init__(message)


class RecordStoreWriteError(WriteError):
    """Record store rejected or could not perform the insert."""


class IndexWriteError(WriteError):
    """Document index rejected or could not perform the write."""

    def __init__(self, message: str, diagnostic: str = "", *, retryable: bool = True) -> None:
        self.diagnostic = diagnostic
        super().__init__(f"{message}: {diagnostic}" if diagnostic else message, retryable=retryable)


class QueueReadError(IngestError):
    """Reading the next message from the queue failed."""
