"""
Catalog lookup exceptions.

Exception Hierarchy:
    NotFoundError (core)
    ├── ProductNotFoundError
    ├── SellerNotFoundError
    └── BuyerNotFoundError
"""

from core.exceptions import NotFoundError


class ProductNotFoundError(NotFoundError):
    """Product absent or not published."""

    default_error_code: str = "PRODUCT_NOT_FOUND"


class SellerNotFoundError(NotFoundError):
    """Seller absent or deactivated."""

    default_error_code: str = "SELLER_NOT_FOUND"


class BuyerNotFoundError(NotFoundError):
    """Buyer absent or deactivated."""

    default_error_code: str = "BUYER_NOT_FOUND"
