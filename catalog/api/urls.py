"""
Catalog REST API URL configuration.

Endpoints:
- GET  /api/v1/navigations/                          - List navigation sections
- GET  /api/v1/navigations/<id>/                     - Navigation section
- POST /api/v1/navigations/<id>/scrape/              - Force category refresh
- GET  /api/v1/categories/navigation/<navigation_id>/ - Categories of a section
- GET  /api/v1/categories/<id>/                      - Category
- POST /api/v1/categories/<id>/scrape/               - Force product refresh
- GET  /api/v1/products/category/<category_id>/      - Products of a category
- GET  /api/v1/products/<id>/                        - Product with detail and reviews
- POST /api/v1/products/<id>/scrape/                 - Force detail refresh
- GET  /api/v1/scrape-jobs/                          - Recent scrape jobs
- GET  /api/v1/scrape-jobs/<id>/                     - Scrape job
"""

from django.urls import path

from catalog.api.views import (
    get_category,
    get_navigation,
    get_product,
    get_scrape_job,
    list_categories,
    list_navigations,
    list_products,
    list_scrape_jobs,
    scrape_category,
    scrape_navigation,
    scrape_product,
)

app_name = 'catalog_api'

urlpatterns = [
    # Navigation
    path('navigations/', list_navigations, name='list_navigations'),
    path('navigations/<uuid:navigation_id>/', get_navigation, name='get_navigation'),
    path('navigations/<uuid:navigation_id>/scrape/', scrape_navigation, name='scrape_navigation'),

    # Categories
    path('categories/navigation/<uuid:navigation_id>/', list_categories, name='list_categories'),
    path('categories/<uuid:category_id>/', get_category, name='get_category'),
    path('categories/<uuid:category_id>/scrape/', scrape_category, name='scrape_category'),

    # Products
    path('products/category/<uuid:category_id>/', list_products, name='list_products'),
    path('products/<uuid:product_id>/', get_product, name='get_product'),
    path('products/<uuid:product_id>/scrape/', scrape_product, name='scrape_product'),

    # Scrape jobs
    path('scrape-jobs/', list_scrape_jobs, name='list_scrape_jobs'),
    path('scrape-jobs/<uuid:job_id>/', get_scrape_job, name='get_scrape_job'),
]
