"""
Root URL configuration for the shippingaid project.

The community app owns every public route; the Django admin lives under
/admin/.
"""

from django.contrib import admin
from django.urls import include, path


urlpatterns = [
    path("admin/", admin.site.urls),
    path("", include("community.urls")),
]
