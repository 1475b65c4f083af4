"""
Explicit loaders for catalog records.

Payment code passes ids around and calls these functions when it needs
the record; nothing traverses relations lazily.

Usage:
    from catalog.loaders import load_product

    product = load_product(product_id)  # raises ProductNotFoundError
"""

from __future__ import annotations

import uuid

from catalog.exceptions import BuyerNotFoundError, ProductNotFoundError, SellerNotFoundError
from catalog.models import Buyer, Product, Seller


def load_product(product_id: uuid.UUID) -> Product:
    """
    Load a published product.

    Raises:
        ProductNotFoundError: Product missing or unpublished
    """
    product = Product.objects.filter(id=product_id, is_published=True).first()
    if product is None:
        raise ProductNotFoundError(
            f"Product {product_id} not found",
            details={"product_id": str(product_id)},
        )
    return product


def load_seller(seller_id: uuid.UUID) -> Seller:
    """
    Load an active seller.

    Raises:
        SellerNotFoundError: Seller missing or inactive
    """
    seller = Seller.objects.filter(id=seller_id, is_active=True).first()
    if seller is None:
        raise SellerNotFoundError(
            f"Seller {seller_id} not found",
            details={"seller_id": str(seller_id)},
        )
    return seller


def load_buyer(buyer_id: uuid.UUID) -> Buyer:
    """
    Load an active buyer.

    Raises:
        BuyerNotFoundError: Buyer missing or inactive
    """
    buyer = Buyer.objects.filter(id=buyer_id, is_active=True).first()
    if buyer is None:
        raise BuyerNotFoundError(
            f"Buyer {buyer_id} not found",
            details={"buyer_id": str(buyer_id)},
        )
    return buyer


def find_seller(seller_id: uuid.UUID) -> Seller | None:
    """Seller by id regardless of status; used for notifications after the fact."""
    return Seller.objects.filter(id=seller_id).first()


def find_buyer(buyer_id: uuid.UUID) -> Buyer | None:
    """Buyer by id regardless of status; used for notifications after the fact."""
    return Buyer.objects.filter(id=buyer_id).first()


def find_product(product_id: uuid.UUID) -> Product | None:
    return Product.objects.filter(id=product_id).first()
