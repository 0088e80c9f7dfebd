from django.urls import path
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenRefreshView

from apps.accounts.views import (
    ChangePasswordView,
    CheckSuperAdminView,
    CurrentUserView,
    LoginView,
    LogoutView,
    SetupSuperAdminView,
    UpdateProfileView,
    UserViewSet,
)

router = DefaultRouter()
router.register("users", UserViewSet, basename="user")

urlpatterns = [
    path("login/", LoginView.as_view(), name="login"),
    path("logout/", LogoutView.as_view(), name="logout"),
    path("user/", CurrentUserView.as_view(), name="current-user"),
    path("change-password/", ChangePasswordView.as_view(), name="change-password"),
    path("update-profile/", UpdateProfileView.as_view(), name="update-profile"),
    path("check-super-admin/", CheckSuperAdminView.as_view(), name="check-super-admin"),
    path("setup-super-admin/", SetupSuperAdminView.as_view(), name="setup-super-admin"),
    path("token/refresh/", TokenRefreshView.as_view(), name="token-refresh"),
]
urlpatterns += router.urls
