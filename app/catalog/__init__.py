"""
Catalog app: sellers, buyers and products a payment refers to.

Only the pieces the payment flow needs live here. Payments keep plain
UUID references to these records and load them explicitly.

Usage:
    from catalog.loaders import load_product, load_seller, load_buyer

    product = load_product(product_id)
    seller = load_seller(product.seller_id)
"""
