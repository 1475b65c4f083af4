"""
Catalog models referenced by payments.

Sellers, buyers and products are owned by the marketplace catalog; this
app keeps the minimum the payment flow reads: identity, contact details,
product price and publication state.
"""

from __future__ import annotations

from django.db import models
from django.db.models import Q

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class Seller(UUIDPrimaryKeyMixin, BaseModel):
    """A seller who lists products and receives earnings."""

    name = models.CharField(max_length=255)
    email = models.EmailField(unique=True)
    phone = models.CharField(max_length=20, blank=True, default="")
    is_active = models.BooleanField(default=True, db_index=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return self.name


class Buyer(UUIDPrimaryKeyMixin, BaseModel):
    """A buyer purchasing digital products."""

    name = models.CharField(max_length=255, blank=True, default="")
    email = models.EmailField(unique=True)
    phone = models.CharField(max_length=20, blank=True, default="")
    is_active = models.BooleanField(default=True, db_index=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return self.email


class Product(UUIDPrimaryKeyMixin, BaseModel):
    """
    A digital product offered by a seller.

    Fields:
        seller_id: Owning seller (plain id, loaded through catalog.loaders)
        price: Listed price in major units
        is_published: Only published products can be bought
        sales_count: Incremented with an F() expression on each capture
    """

    seller_id = models.UUIDField(db_index=True)
    title = models.CharField(max_length=255)
    price = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default="INR")
    is_published = models.BooleanField(default=True, db_index=True)
    sales_count = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=Q(price__gt=0),
                name="product_price_positive",
            ),
        ]

    def __str__(self) -> str:
        return self.title
