"""Error types raised by the runsheet conversion pipeline.

Every fatal error carries the message that should be shown to the end user, so
front ends can simply render ``str(err)``.
"""


class ConversionError(Exception):
    """Base class for all fatal conversion errors."""

    default_message = "An unknown error occurred during conversion."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)


class ConfigurationError(ConversionError):
    default_message = "OPENAI_API_KEY is not configured in your environment."


class InvalidDocumentError(ConversionError):
    default_message = "The PDF file is empty or corrupted."


class ServiceBusyError(ConversionError):
    default_message = "The AI model is busy. Please try again in a moment."


class ExtractionFailedError(ConversionError):
    default_message = (
        "Failed to convert a page. The file may be corrupted or in an unsupported format."
    )


class EmptyResultError(ConversionError):
    default_message = (
        "Conversion resulted in empty or incomplete data. "
        "The PDF might not contain a valid runsheet."
    )
