"""Custom exceptions for Template Filler."""

from typing import Optional


class TemplateFillerError(Exception):
    """Base exception for Template Filler errors."""

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class TemplateFormatInvalid(TemplateFillerError):
    """Exception raised when a template part is missing or malformed."""

    pass


class DocumentVersionMismatch(TemplateFormatInvalid):
    """Exception raised when the template was written by an unsupported office version."""

    pass


class PartNotFoundError(TemplateFillerError):
    """Exception raised when a container part does not exist."""

    pass


class DuplicatePartError(TemplateFillerError):
    """Exception raised when a container part is created twice."""

    pass


class PlaceholderMissing(TemplateFillerError):
    """Exception raised when a placeholder has no value in the active scope."""

    def __init__(self, message: str, placeholder: Optional[str] = None, details: Optional[str] = None):
        super().__init__(message, details)
        self.placeholder = placeholder


class NoDataForGeneration(TemplateFillerError):
    """Exception raised when a document is generated without any data page."""

    pass


class InterceptorContractViolation(TemplateFillerError):
    """Exception raised when a value interceptor breaks its call contract."""

    def __init__(self, message: str, placeholder: Optional[str] = None, details: Optional[str] = None):
        super().__init__(message, details)
        self.placeholder = placeholder


class InterceptorExecutionFailed(TemplateFillerError):
    """Exception raised when a value interceptor fails with a foreign exception."""

    def __init__(self, message: str, placeholder: Optional[str] = None, details: Optional[str] = None):
        super().__init__(message, details)
        self.placeholder = placeholder


class NoLegalAnchor(TemplateFillerError):
    """Exception raised when no legal splice point exists for a foreign document."""

    pass


class UnknownFormattingCharacter(TemplateFillerError):
    """Exception raised when a value contains a character the format cannot carry."""

    def __init__(self, message: str, placeholder: Optional[str] = None,
                 character: Optional[str] = None, details: Optional[str] = None):
        super().__init__(message, details)
        self.placeholder = placeholder
        self.character = character


class UnsupportedValueError(TemplateFillerError):
    """Exception raised when a value kind is not supported by the document format."""

    pass


class DataModelError(TemplateFillerError):
    """Exception raised for invalid keys, names or value options in the data model."""

    pass


class ImageResourceError(TemplateFillerError):
    """Exception raised when an image resource cannot be loaded or identified."""

    pass


class CustomXmlError(TemplateFillerError):
    """Exception raised by the custom XML parts extension."""

    pass
