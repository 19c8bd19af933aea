"""Exception hierarchy for XML fragment extraction.

Every exception raised by this package derives from FragmentError. Errors
coming from the underlying XML reader (for example lxml's XMLSyntaxError) and
exceptions raised by user callbacks are propagated unchanged and are not
wrapped into this hierarchy.
"""

from typing import Optional


class FragmentError(Exception):
    """Base exception for fragment extraction errors."""


class UnexpectedEndOfTokenError(FragmentError):
    """Raised when a token source yields no token without signalling end of input."""

    def __init__(self, message: str = "unexpected nil token") -> None:
        super().__init__(message)


class DecodeError(FragmentError):
    """Raised when an element subtree cannot be decoded from the token stream."""

    def __init__(self, message: str, element: Optional[str] = None) -> None:
        super().__init__(message)
        self.element = element


class BindingError(DecodeError):
    """Raised when an XML node cannot be bound to a destination type."""

    def __init__(
        self,
        message: str,
        destination: Optional[type] = None,
        field_name: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.destination = destination
        self.field_name = field_name
