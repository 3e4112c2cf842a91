import logging

from django.db import connection
from django.http import JsonResponse
from rest_framework.response import Response

logger = logging.getLogger(__name__)


def health_check(request):
    """Liveness check that also checks the database connection."""
    try:
        with connection.cursor() as cursor:
            cursor.execute('SELECT 1')
    except Exception:
        logger.exception("Health check failed: database unavailable")
        return JsonResponse({'status': 'error', 'database': 'unavailable'}, status=503)

    return JsonResponse({'status': 'ok', 'database': 'ok'})


def error_404(request, exception):
    """Custom 404 handler."""
    return JsonResponse({
        'error': 'Not found',
        'status': 404
    }, status=404)


def error_500(request):
    """Custom 500 handler."""
    return JsonResponse({
        'error': 'Internal server error',
        'status': 500
    }, status=500)


def error_response(exc, status_code):
    """
    Render a domain exception as ``{"error", "details"}``.

    Exceptions with ``as_detail()`` contribute one structured detail.
    """
    details = [exc.as_detail()] if hasattr(exc, 'as_detail') else []
    return Response({'error': str(exc), 'details': details}, status=status_code)
