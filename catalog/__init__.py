"""
Catalog Django application.

Maintains the locally cached product catalog (navigation sections,
categories, products, product detail and reviews) refreshed from the
structured search provider and rendered product pages.
"""
