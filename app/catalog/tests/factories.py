"""
Factory Boy factories for catalog test data.

Usage:
    from catalog.tests.factories import ProductFactory, SellerFactory

    seller = SellerFactory()
    product = ProductFactory(seller_id=seller.id, price=Decimal("499.00"))
"""

from decimal import Decimal

import factory

from catalog.models import Buyer, Product, Seller


class SellerFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Seller
        skip_postgeneration_save = True

    name = factory.Faker("company")
    email = factory.Sequence(lambda n: f"seller{n}@example.com")
    is_active = True


class BuyerFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Buyer
        skip_postgeneration_save = True

    name = factory.Faker("name")
    email = factory.Sequence(lambda n: f"buyer{n}@example.com")
    is_active = True


class ProductFactory(factory.django.DjangoModelFactory):
    """
    Published product owned by a freshly created seller.

    Example:
        product = ProductFactory(seller_id=seller.id)
    """

    class Meta:
        model = Product
        skip_postgeneration_save = True

    seller_id = factory.LazyFunction(lambda: SellerFactory().id)
    title = factory.Faker("sentence", nb_words=3)
    price = Decimal("499.00")
    currency = "INR"
    is_published = True
