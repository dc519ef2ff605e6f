"""Exception types raised while converting an uploaded image.

Each error carries the HTTP status the transport layer should answer with and
a message that is safe to show to the caller. Details such as filesystem paths
belong in the log, not in ``public_message``.
"""

from __future__ import annotations


class ConversionError(RuntimeError):
    """Base class for failures that abort a single conversion request."""

    status_code: int = 500
    default_message: str = "Image processing failed"

    def __init__(self, public_message: str | None = None) -> None:
        self.public_message = public_message or self.default_message
        super().__init__(self.public_message)


class NoImageField(ConversionError):
    """The request body never supplied a field named ``image``."""

    status_code = 400
    default_message = "No image field found in request"


class MalformedStream(ConversionError):
    """The multipart body could not be parsed."""

    status_code = 400
    default_message = "Invalid multipart data"


class IOFailure(ConversionError):
    """Temporary storage could not be allocated, written, read or removed.

    Also raised when the upload stream ends before the body is complete, for
    example because the client disconnected.
    """

    status_code = 500
    default_message = "Error writing to temporary file"


class UnreadableImage(ConversionError):
    """Uploaded bytes are not a decodable image, or the image has no pixels."""

    status_code = 500
    default_message = "Image processing failed: unreadable image"


class EncodeFailure(ConversionError):
    status_code = 500
    default_message = "Image processing failed: could not encode result"


__all__ = [
    "ConversionError",
    "EncodeFailure",
    "IOFailure",
    "MalformedStream",
    "NoImageField",
    "UnreadableImage",
]
