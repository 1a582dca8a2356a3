"""
================================================================================
SHIPPING AID COMMUNITY - CUSTOM MIDDLEWARE
================================================================================

@file        middleware.py
@description Path-based access gate for signed-in areas

MODULE PURPOSE
================================================================================
LoginRequiredPathMiddleware
   - Redirects visitors without a session away from protected path prefixes
   - Appends the requested path as ?next= so sign-in returns the visitor to it

PROTECTED PATHS
================================================================================
Prefixes come from settings.PROTECTED_PATH_PREFIXES, default:

    ("/ask", "/notifications", "/q")

A path is protected when it equals a prefix or continues it with "/":

    /q              protected
    /q/sea-personnel protected
    /questions/...  not protected (question pages are public)

Views outside these prefixes that need a user use @login_required.

ORDERING
================================================================================
Must come after django.contrib.auth.middleware.AuthenticationMiddleware,
which sets request.user.

================================================================================
"""

from django.conf import settings
from django.contrib.auth.views import redirect_to_login


DEFAULT_PROTECTED_PATH_PREFIXES = ("/ask", "/notifications", "/q")


def is_protected_path(path, prefixes):
    """True if path equals one of the prefixes or lies beneath it."""
    for prefix in prefixes:
        prefix = prefix.rstrip("/")
        if not prefix:
            continue
        if path == prefix or path.startswith(prefix + "/"):
            return True
    return False


class LoginRequiredPathMiddleware:
    """
    Send anonymous visitors on protected paths to the sign-in page.

    Prefixes are read on every request so settings overrides in tests
    take effect without rebuilding the middleware chain.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        prefixes = getattr(
            settings, "PROTECTED_PATH_PREFIXES", DEFAULT_PROTECTED_PATH_PREFIXES
        )

        if is_protected_path(request.path, prefixes) and not request.user.is_authenticated:
            return redirect_to_login(request.get_full_path(), settings.LOGIN_URL)

        return self.get_response(request)
