"""
URL configuration for the Catalog Scraper service.

The `urlpatterns` list routes URLs to views. For more information please see:
    https://docs.djangoproject.com/en/4.2/topics/http/urls/
"""

from django.contrib import admin
from django.urls import path, include

from catalog.views import health_check

urlpatterns = [
    # Django Admin
    path("admin/", admin.site.urls),

    # Health Check Endpoint (no auth required for load balancer checks)
    path("api/health/", health_check, name="health-check"),

    # Catalog API
    path("api/v1/", include("catalog.api.urls")),
]
