# pos-backend/core/urls.py
"""
URL configuration for core project.

Only the tax endpoints of the Kenya Liquor domain extension and the API docs
are served from here.
"""

from django.contrib import admin
from django.urls import path, include
from django.views.generic import RedirectView
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView


urlpatterns = [
    path("", RedirectView.as_view(url="/admin/", permanent=False)),
    path("admin/", admin.site.urls),

    # API & docs
    path("api/v1/schema/", SpectacularAPIView.as_view(), name="schema"),
    path("api/v1/docs/", SpectacularSwaggerView.as_view(url_name="schema")),

    # Domain extensions
    path(
        "api/v1/domain-extensions/kenya-liquor/",
        include("domain_extensions.kenya_liquor.urls", namespace="kenya_liquor"),
    ),
]
