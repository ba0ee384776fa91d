"""
URL configuration for the ERP backend.

Every app mounts its routes under /api/v1/.
"""
from django.contrib import admin
from django.urls import path, include, re_path
from django.conf import settings
from django.views.static import serve

admin.site.site_header = "Clinic ERP Admin Panel"
admin.site.site_title = "Clinic ERP Admin Portal"
admin.site.index_title = "Pharmacy & Clinic Administration"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('backend.core.urls')),
    path('api/v1/', include('backend.locations.urls')),
    path('api/v1/', include('backend.parties.urls')),
    path('api/v1/', include('backend.catalog.urls')),
    path('api/v1/', include('backend.inventory.urls')),
    path('api/v1/', include('backend.pricing.urls')),
    path('api/v1/', include('backend.purchasing.urls')),
    path('api/v1/', include('backend.finance.urls')),
    path('api/v1/', include('backend.pos.urls')),
    path('api/v1/', include('backend.scheduling.urls')),
    path('api/v1/', include('backend.medical.urls')),
    path('api/v1/', include('backend.community.urls')),
    re_path(r'^media/(?P<path>.*)$', serve, {'document_root': settings.MEDIA_ROOT}),
]
