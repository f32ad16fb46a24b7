from rest_framework.permissions import BasePermission

from .models import UserProfile


ROLE_ADMIN = "admin"
ROLE_CLIENT = "client"
ROLE_FREELANCER = "freelancer"
ROLE_MENTOR = "mentor"
APP_ROLES = {ROLE_ADMIN, ROLE_CLIENT, ROLE_FREELANCER, ROLE_MENTOR}


def user_role(user):
    if not user or not user.is_authenticated:
        return None
    if user.is_superuser:
        return ROLE_ADMIN
    try:
        return user.userprofile.role
    except UserProfile.DoesNotExist:
        return None


class IsAuthenticatedWithAppRole(BasePermission):
    def has_permission(self, request, view):
        role = user_role(request.user)
        return bool(role in APP_ROLES)


class IsAdminRole(BasePermission):
    def has_permission(self, request, view):
        return user_role(request.user) == ROLE_ADMIN
