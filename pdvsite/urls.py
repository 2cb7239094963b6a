"""
URL configuration for pdvsite project.

The admin lives under /admin/ and the point-of-sale JSON API under /api/.
Uploaded receipts and attachments are served from MEDIA_URL in DEBUG.
"""
from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', include('api.urls')),
]

if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
