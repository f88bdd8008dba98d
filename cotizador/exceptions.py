"""Application exceptions. The API maps each one to an HTTP status."""


class CotizadorError(Exception):
    """Base class for all service errors."""


class CurrencyFetchError(CotizadorError):
    """The currency webhook failed or answered with unusable values."""


class InvalidQuoteParametersError(CotizadorError):
    """Request parameters for a calculation are missing or out of range."""


class ProfileNotFoundError(CotizadorError):
    """No cost profile exists with the requested id."""


class DuplicateProfileError(CotizadorError):
    """A cost profile with the same name already exists."""


class ProductNotFoundError(CotizadorError):
    """No product exists with the requested code."""


class DuplicateProductError(CotizadorError):
    """A product with the same Codigo_Producto already exists."""


class InvalidProductDataError(CotizadorError):
    """A product request is empty or a stored product lacks required data."""
