from rest_framework.permissions import AllowAny
from rest_framework.renderers import JSONOpenAPIRenderer
from rest_framework.response import Response
from rest_framework.schemas.openapi import SchemaGenerator
from rest_framework.views import APIView


PUBLIC_PATHS = {
    "/api/login/",
    "/api/token/refresh/",
    "/api/schema/",
}

TAGS = [
    ("Auth", "Login and token refresh."),
    ("Mentorship", "Mentor matching, mentorship requests and sessions."),
    ("Moderation", "Content flags, disputes and moderation reporting."),
    ("Notifications", "In-app notifications for the signed-in user."),
    ("General", "Other endpoints."),
]
TAG_ORDER = {name: index for index, (name, _) in enumerate(TAGS)}

PATH_PREFIX_TAGS = (
    ("/api/login/", "Auth"),
    ("/api/token/", "Auth"),
    ("/api/mentorships/", "Mentorship"),
    ("/api/sessions/", "Mentorship"),
    ("/api/flags/", "Moderation"),
    ("/api/disputes/", "Moderation"),
    ("/api/moderation/", "Moderation"),
    ("/api/notifications/", "Notifications"),
)


def tag_for_path(path: str) -> str:
    for prefix, tag in PATH_PREFIX_TAGS:
        if path.startswith(prefix):
            return tag
    return "General"


class SkillRiseSchemaView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []
    renderer_classes = [JSONOpenAPIRenderer]

    def get(self, request, *args, **kwargs):
        generator = SchemaGenerator(
            title="SkillRise API",
            description="Mentorship matching, moderation and dispute resolution APIs.",
            version="1.0.0",
        )
        schema = generator.get_schema(request=request, public=True)
        if not schema:
            return Response({})

        components = schema.setdefault("components", {})
        components.setdefault("securitySchemes", {})["HTTPBearer"] = {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
        }
        schema["tags"] = [{"name": name, "description": text} for name, text in TAGS]

        paths = schema.get("paths", {})
        for path, operations in paths.items():
            for method, operation in operations.items():
                if method.lower() not in {"get", "post", "put", "patch", "delete"}:
                    continue
                operation["tags"] = [tag_for_path(path)]
                if path in PUBLIC_PATHS:
                    operation.pop("security", None)
                else:
                    operation["security"] = [{"HTTPBearer": []}]

        schema["paths"] = {
            path: paths[path]
            for path in sorted(paths, key=lambda item: (TAG_ORDER[tag_for_path(item)], item))
        }
        return Response(schema)
