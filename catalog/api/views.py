"""
Catalog REST API views.

Read endpoints serve what is in the store. When a listing is empty (or a
product has no detail yet) a background scrape job is queued and its id
returned alongside the data; a queueing failure is logged and the
cached data is still served.
"""

import logging
from typing import Any, Dict, Optional

from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response

from catalog.models import (
    Category,
    NavigationSection,
    Product,
    ProductDetail,
    ScrapeJob,
    ScrapeJobStatus,
    ScrapeTargetType,
)
from catalog.services.orchestrator import get_cached_products
from catalog.tasks import enqueue_scrape_job

logger = logging.getLogger(__name__)

DEFAULT_PAGE_LIMIT = 20
MAX_PAGE_LIMIT = 100
DEFAULT_JOB_LIMIT = 50


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def _decimal(value) -> Optional[float]:
    return float(value) if value is not None else None


def _positive_int_param(request, name: str, default: int, maximum: Optional[int] = None) -> int:
    raw = request.query_params.get(name)
    if raw in (None, ''):
        return default
    value = int(raw)
    if value < 1:
        raise ValueError(f'{name} must be >= 1')
    if maximum is not None and value > maximum:
        raise ValueError(f'{name} must be <= {maximum}')
    return value


def _try_enqueue(job_type: str, entity_id=None, **kwargs) -> Optional[str]:
    """Queue a scrape job; None if the broker is unavailable."""
    try:
        return enqueue_scrape_job(job_type, entity_id, **kwargs)
    except Exception as e:
        logger.warning(f'Could not queue {job_type} scrape for {entity_id}: {e}')
        return None


# ============================================================
# Serialization
# ============================================================

def serialize_navigation(section: NavigationSection) -> Dict[str, Any]:
    return {
        'id': str(section.id),
        'title': section.title,
        'slug': section.slug,
        'source_url': section.source_url,
        'listed_at': _iso(section.listed_at),
        'last_refreshed_at': _iso(section.last_refreshed_at),
    }


def serialize_category(category: Category) -> Dict[str, Any]:
    return {
        'id': str(category.id),
        'navigation_id': str(category.navigation_id),
        'parent_id': str(category.parent_id) if category.parent_id else None,
        'title': category.title,
        'slug': category.slug,
        'product_count': category.product_count,
        'source_url': category.source_url,
        'last_refreshed_at': _iso(category.last_refreshed_at),
    }


def serialize_product(product: Product) -> Dict[str, Any]:
    return {
        'id': str(product.id),
        'source_id': product.source_id,
        'source_url': product.source_url,
        'title': product.title,
        'author': product.author,
        'price': _decimal(product.price),
        'currency': product.currency,
        'image_url': product.image_url,
        'category_id': str(product.category_id) if product.category_id else None,
        'last_refreshed_at': _iso(product.last_refreshed_at),
    }


def serialize_detail(detail: Optional[ProductDetail]) -> Optional[Dict[str, Any]]:
    if detail is None:
        return None
    return {
        'description': detail.description,
        'specs': detail.specs,
        'rating_average': _decimal(detail.rating_average),
        'review_count': detail.review_count,
        'recommendations': detail.recommendations,
        'last_refreshed_at': _iso(detail.last_refreshed_at),
    }


def serialize_job(job: ScrapeJob) -> Dict[str, Any]:
    return {
        'id': str(job.id),
        'target_url': job.target_url,
        'target_type': job.target_type,
        'status': job.status,
        'started_at': _iso(job.started_at),
        'finished_at': _iso(job.finished_at),
        'duration_seconds': job.duration_seconds,
        'error_log': job.error_log,
        'created_at': _iso(job.created_at),
    }


def _queued_response(job_id: Optional[str]) -> Response:
    if job_id is None:
        return Response(
            {'error': 'Scrape queue unavailable'},
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    return Response(
        {'message': 'Scrape job queued', 'job_id': job_id},
        status=status.HTTP_202_ACCEPTED,
    )


# ============================================================
# Navigation
# ============================================================

@api_view(['GET'])
def list_navigations(request):
    """All navigation sections; queues a navigation scrape when there are none."""
    sections = list(NavigationSection.objects.order_by('title'))

    job_id = None
    if not sections:
        job_id = _try_enqueue(ScrapeTargetType.NAVIGATION)

    return Response({
        'navigations': [serialize_navigation(s) for s in sections],
        'job_id': job_id,
    })


@api_view(['GET'])
def get_navigation(request, navigation_id):
    section = NavigationSection.objects.filter(pk=navigation_id).first()
    if section is None:
        return Response({'error': 'Navigation not found'}, status=status.HTTP_404_NOT_FOUND)
    return Response(serialize_navigation(section))


@api_view(['POST'])
def scrape_navigation(request, navigation_id):
    """Force a category refresh for one navigation section."""
    if not NavigationSection.objects.filter(pk=navigation_id).exists():
        return Response({'error': 'Navigation not found'}, status=status.HTTP_404_NOT_FOUND)
    return _queued_response(_try_enqueue(ScrapeTargetType.CATEGORY, navigation_id, force=True))


# ============================================================
# Categories
# ============================================================

@api_view(['GET'])
def list_categories(request, navigation_id):
    """Categories of a navigation section; queues a category scrape when empty."""
    if not NavigationSection.objects.filter(pk=navigation_id).exists():
        return Response({'error': 'Navigation not found'}, status=status.HTTP_404_NOT_FOUND)

    categories = list(Category.objects.filter(navigation_id=navigation_id).order_by('title'))

    job_id = None
    if not categories:
        job_id = _try_enqueue(ScrapeTargetType.CATEGORY, navigation_id)

    return Response({
        'categories': [serialize_category(c) for c in categories],
        'job_id': job_id,
    })


@api_view(['GET'])
def get_category(request, category_id):
    category = Category.objects.filter(pk=category_id).first()
    if category is None:
        return Response({'error': 'Category not found'}, status=status.HTTP_404_NOT_FOUND)
    return Response(serialize_category(category))


@api_view(['POST'])
def scrape_category(request, category_id):
    """Force a product refresh for one category."""
    if not Category.objects.filter(pk=category_id).exists():
        return Response({'error': 'Category not found'}, status=status.HTTP_404_NOT_FOUND)
    return _queued_response(_try_enqueue(ScrapeTargetType.PRODUCT, category_id, force=True))


# ============================================================
# Products
# ============================================================

@api_view(['GET'])
def list_products(request, category_id):
    """
    One page of a category's products.

    Query params: page (default 1), limit (default 20, max 100).
    Queues a product scrape for the page when it is empty.
    """
    category = Category.objects.filter(pk=category_id).first()
    if category is None:
        return Response({'error': 'Category not found'}, status=status.HTTP_404_NOT_FOUND)

    try:
        page = _positive_int_param(request, 'page', 1)
        limit = _positive_int_param(request, 'limit', DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT)
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    result = get_cached_products(category, page, limit)

    job_id = None
    if not result.items:
        job_id = _try_enqueue(ScrapeTargetType.PRODUCT, category.id, page=page, limit=limit)

    return Response({
        'products': [serialize_product(p) for p in result.items],
        'total': result.total,
        'page': page,
        'limit': limit,
        'job_id': job_id,
    })


@api_view(['GET'])
def get_product(request, product_id):
    """Product with detail and reviews; queues a detail scrape when there is no detail."""
    product = Product.objects.select_related('category').filter(pk=product_id).first()
    if product is None:
        return Response({'error': 'Product not found'}, status=status.HTTP_404_NOT_FOUND)

    detail = ProductDetail.objects.filter(product=product).first()

    job_id = None
    if detail is None:
        job_id = _try_enqueue(ScrapeTargetType.PRODUCT_DETAIL, product.id)

    data = serialize_product(product)
    data['category'] = serialize_category(product.category) if product.category else None
    data['detail'] = serialize_detail(detail)
    data['reviews'] = [
        {
            'id': str(review.id),
            'author': review.author,
            'rating': review.rating,
            'text': review.text,
            'created_at': _iso(review.created_at),
        }
        for review in product.reviews.all()
    ]
    data['job_id'] = job_id
    return Response(data)


@api_view(['POST'])
def scrape_product(request, product_id):
    """Force a detail refresh for one product."""
    if not Product.objects.filter(pk=product_id).exists():
        return Response({'error': 'Product not found'}, status=status.HTTP_404_NOT_FOUND)
    return _queued_response(_try_enqueue(ScrapeTargetType.PRODUCT_DETAIL, product_id, force=True))


# ============================================================
# Scrape jobs
# ============================================================

@api_view(['GET'])
def list_scrape_jobs(request):
    """
    Most recent scrape jobs.

    Query params: status (pending|in_progress|completed|failed), limit (default 50).
    """
    job_status = request.query_params.get('status')
    if job_status and job_status not in ScrapeJobStatus.values:
        return Response(
            {'error': f'Invalid status. Valid statuses: {", ".join(ScrapeJobStatus.values)}'},
            status=status.HTTP_400_BAD_REQUEST,
        )

    try:
        limit = _positive_int_param(request, 'limit', DEFAULT_JOB_LIMIT, MAX_PAGE_LIMIT)
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    jobs = ScrapeJob.objects.order_by('-created_at')
    if job_status:
        jobs = jobs.filter(status=job_status)

    return Response({'jobs': [serialize_job(job) for job in jobs[:limit]]})


@api_view(['GET'])
def get_scrape_job(request, job_id):
    job = ScrapeJob.objects.filter(pk=job_id).first()
    if job is None:
        return Response({'error': 'Job not found'}, status=status.HTTP_404_NOT_FOUND)
    return Response(serialize_job(job))
