# core/api/responses.py

"""
JSON ENVELOPE

Success: {"success": true,  "message": "...", "data": ...}
Failure: {"success": false, "message": "...", "error": {...}}
"""

from __future__ import annotations

from rest_framework import status as http_status
from rest_framework.response import Response


def success_response(data=None, message="OK", status=http_status.HTTP_200_OK, headers=None):
    return Response(
        {"success": True, "message": message, "data": data},
        status=status,
        headers=headers,
    )


def created_response(data=None, message="Created"):
    return success_response(data, message, status=http_status.HTTP_201_CREATED)


def paginated_response(page, serializer_class, message="OK", context=None):
    return success_response(
        {
            "results": serializer_class(page.results, many=True, context=context).data,
            "pagination": page.pagination(),
        },
        message,
    )


def error_response(message, status, error=None, headers=None):
    return Response(
        {"success": False, "message": message, "error": error or {}},
        status=status,
        headers=headers,
    )
