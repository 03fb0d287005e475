# backend/core/views.py
import logging

from django.conf import settings
from django.http import JsonResponse
from rest_framework.response import Response
from rest_framework.views import APIView

from .authentication import (
    AdminContext, check_admin_password, end_admin_session, start_admin_session,
)
from .exceptions import Unauthorized

logger = logging.getLogger(__name__)


def health_check(request):
    """
    Liveness probe for the load balancer; does not touch the database.
    """
    return JsonResponse({"status": "ok", "message": "Django backend is running"})


def site_context(request):
    """Template context processor with the site-wide settings pages need."""
    return {
        "site_name": settings.SITE_NAME,
        "site_url": settings.SITE_URL,
        "site_description": settings.SITE_DESCRIPTION,
    }


class AdminLoginView(APIView):
    def post(self, request):
        if not check_admin_password(request.data.get("password")):
            logger.warning("Rejected admin login from %s", request.META.get("REMOTE_ADDR"))
            raise Unauthorized("Invalid password")
        logger.info("Admin session started from %s", request.META.get("REMOTE_ADDR"))
        return start_admin_session(Response({"success": True, "authenticated": True}))


class AdminLogoutView(APIView):
    def post(self, request):
        return end_admin_session(Response({"success": True, "authenticated": False}))


class AdminSessionView(APIView):
    def get(self, request):
        ctx = AdminContext.from_request(request)
        response = Response({"success": True, "authenticated": ctx.is_admin})
        response["Cache-Control"] = "private, no-store"
        return response
