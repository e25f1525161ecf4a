from django.urls import path

from modules.core.views import LoginView, MeView, health_check

urlpatterns = [
    path("health", health_check, name="health_check"),
    path("api/v1/auth/login/", LoginView.as_view(), name="auth_login"),
    path("api/v1/me", MeView.as_view(), name="me"),
]
