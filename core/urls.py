from django.contrib import admin
from django.urls import path, include
from rest_framework import permissions
from drf_yasg.views import get_schema_view
from drf_yasg import openapi

schema_view = get_schema_view(
    openapi.Info(
        title="Skating Park Management API",
        default_version='v1',
        description="Ticketing, sales, expenses, reports and backups for skating park branches",
    ),
    public=True,
    permission_classes=[permissions.AllowAny],
)

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/auth/', include('apps.accounts.urls')),
    path('api/branches/', include('apps.branches.urls')),
    path('api/tickets/', include('apps.tickets.urls')),
    path('api/finance/', include('apps.finance.urls')),
    path('api/backups/', include('apps.backups.urls')),
    path('swagger/', schema_view.with_ui('swagger', cache_timeout=0), name='schema-swagger-ui'),
    path('redoc/', schema_view.with_ui('redoc', cache_timeout=0), name='schema-redoc'),
]
