from __future__ import annotations

from django.conf import settings
from django.http import HttpResponseRedirect
from django.utils.crypto import constant_time_compare

EXEMPT_PREFIXES = ("/api/", "/static/", "/login")
EXEMPT_PATHS = {"/favicon.ico"}


class AccessGateMiddleware:
    """
    Shared-secret gate for the app pages. Only active when ACCESS_PASSWORD is set.
    API routes (the relay included) and the login page pass through untouched.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        if self._is_exempt(request.path) or not settings.ACCESS_PASSWORD:
            return self.get_response(request)
        cookie = request.COOKIES.get(settings.AUTH_COOKIE_NAME)
        if not cookie or not constant_time_compare(cookie, settings.AUTH_SECRET):
            return HttpResponseRedirect("/login")
        return self.get_response(request)

    @staticmethod
    def _is_exempt(path: str) -> bool:
        return path in EXEMPT_PATHS or path.startswith(EXEMPT_PREFIXES)
