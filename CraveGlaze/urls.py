from django.contrib import admin
from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static
from django.conf.urls.i18n import i18n_patterns

from bakery.urls import api_urlpatterns, backoffice_urlpatterns

# Main URL configuration
urlpatterns = [
    path('i18n/', include('django.conf.urls.i18n')),  # Language switcher
]

# Payment gateway callback + status polling (no language prefix)
urlpatterns += [
    path('api/', include(api_urlpatterns)),
]

# Back office and Django admin (no language prefix)
urlpatterns += [
    path('admin/', include(backoffice_urlpatterns)),
    path('site-admin/', admin.site.urls),
]

# Storefront (language prefix only for non-default languages)
urlpatterns += i18n_patterns(
    path('', include('bakery.urls')),
    prefix_default_language=False,
)

# Static / media during debug
if settings.DEBUG:
    urlpatterns += [
        path("__reload__/", include("django_browser_reload.urls")),
    ]
    urlpatterns += static(settings.STATIC_URL, document_root=settings.STATIC_ROOT)
