from django.contrib.auth import authenticate, get_user_model
from django.contrib.auth.models import update_last_login
from rest_framework import exceptions, serializers
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer
from rest_framework_simplejwt.views import TokenObtainPairView

from .permissions import user_role


class SkillRiseTokenObtainPairSerializer(TokenObtainPairSerializer):
    """E-mail and password login; the access token carries the user's role."""

    default_error_messages = {
        "no_active_account": "No active account found with the given credentials",
        "account_banned": "This account has been banned",
    }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields.pop(self.username_field, None)
        self.fields["email"] = serializers.EmailField(write_only=True)
        self.fields["password"] = serializers.CharField(write_only=True)

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token["role"] = user_role(user)
        token["email"] = user.email
        return token

    def _fail(self, code):
        raise exceptions.AuthenticationFailed(self.error_messages[code], code)

    def validate(self, attrs):
        email = attrs.get("email", "").strip().lower()
        user_model = get_user_model()
        candidate = user_model.objects.filter(email__iexact=email).first()
        if candidate is None:
            self._fail("no_active_account")

        profile = getattr(candidate, "userprofile", None)
        if profile is not None and profile.is_banned:
            self._fail("account_banned")

        authenticate_kwargs = {
            user_model.USERNAME_FIELD: getattr(candidate, user_model.USERNAME_FIELD),
            "password": attrs.get("password", ""),
        }
        request = self.context.get("request")
        if request is not None:
            authenticate_kwargs["request"] = request

        self.user = authenticate(**authenticate_kwargs)
        if not api_settings.USER_AUTHENTICATION_RULE(self.user):
            self._fail("no_active_account")

        refresh = self.get_token(self.user)
        if api_settings.UPDATE_LAST_LOGIN:
            update_last_login(None, self.user)
        return {
            "refresh": str(refresh),
            "access": str(refresh.access_token),
            "role": refresh["role"],
        }


class SkillRiseTokenObtainPairView(TokenObtainPairView):
    serializer_class = SkillRiseTokenObtainPairSerializer
