"""
URL configuration for the coursesystem project.

Only the admin site is routed here; the domain core is consumed through
``courses.services`` by whatever web layer sits on top.
"""
from django.contrib import admin
from django.urls import path
from django.conf import settings
from django.conf.urls.static import static

urlpatterns = [
    path('admin/', admin.site.urls),
]

# Serve uploaded materials locally during development when S3 is not configured
if settings.DEBUG and not settings.USE_S3_MEDIA:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
