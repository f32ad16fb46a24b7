"""
URL configuration for skillrise_backend project.

The `urlpatterns` list routes URLs to views. For more information please see:
    https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""
from django.contrib import admin
from django.http import JsonResponse
from django.urls import include, path
from rest_framework_simplejwt.views import TokenRefreshView

from core.auth import SkillRiseTokenObtainPairView
from core.schema import SkillRiseSchemaView


def api_root(_request):
    return JsonResponse({
        'status': 'ok',
        'message': 'SkillRise backend is running',
        'schema': '/api/schema/',
    })


urlpatterns = [
    path('', api_root, name='api_root'),
    path('admin/', admin.site.urls),
    path('api/login/', SkillRiseTokenObtainPairView.as_view(), name='api_login'),
    path('api/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('api/schema/', SkillRiseSchemaView.as_view(), name='api-schema'),
    path('api/', include('core.urls')),
]
