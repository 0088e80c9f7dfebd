from django.db.models import Q
from rest_framework import generics, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny
from rest_framework.views import APIView

from apps.accounts import services
from apps.accounts.models import User, UserRole
from apps.accounts.serializers import (
    ChangePasswordSerializer,
    LoginSerializer,
    ManagedUserSerializer,
    ProfileSerializer,
    ResetPasswordSerializer,
    SessionSerializer,
    SuperAdminSetupSerializer,
    UserSerializer,
)
from apps.audit.services import record_audit
from apps.common.exceptions import ConflictError
from apps.common.permissions import IsSuperAdmin
from apps.common.responses import ok


class LoginView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request, *args, **kwargs):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        session = services.login(**serializer.validated_data)
        return ok(
            {
                "token": session["token"],
                "refresh": session["refresh"],
                "user": UserSerializer(session["user"]).data,
                "permissions": session["permissions"],
                "role_name": session["role_name"],
            },
            message="Login successful",
        )


class LogoutView(APIView):
    def post(self, request, *args, **kwargs):
        services.logout(request.user)
        return ok(message="Logged out successfully")


class CurrentUserView(APIView):
    def get(self, request, *args, **kwargs):
        return ok(SessionSerializer.for_user(request.user))


class ChangePasswordView(APIView):
    def post(self, request, *args, **kwargs):
        serializer = ChangePasswordSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        services.change_password(request.user, **serializer.validated_data)
        return ok(message="Password changed successfully")


class UpdateProfileView(APIView):
    def post(self, request, *args, **kwargs):
        serializer = ProfileSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = services.update_profile(request.user, **serializer.validated_data)
        return ok(SessionSerializer.for_user(user), message="Profile updated successfully")


class CheckSuperAdminView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request, *args, **kwargs):
        return ok(services.check_super_admin())


class SetupSuperAdminView(generics.GenericAPIView):
    permission_classes = [AllowAny]
    authentication_classes = []
    serializer_class = SuperAdminSetupSerializer

    def post(self, request, *args, **kwargs):
        if services.super_admin_exists():
            raise ConflictError("Super admin already exists")
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = services.setup_super_admin(**serializer.validated_data)
        return ok(UserSerializer(user).data, message="Super admin created successfully", status=status.HTTP_201_CREATED)


class UserViewSet(viewsets.ModelViewSet):
    serializer_class = ManagedUserSerializer
    permission_classes = [IsSuperAdmin]

    def get_queryset(self):
        queryset = User.objects.exclude(role=UserRole.SUPER_ADMIN)
        params = self.request.query_params

        search = params.get("search")
        if search:
            queryset = queryset.filter(Q(name__icontains=search) | Q(username__icontains=search) | Q(phone__icontains=search))

        role = params.get("role")
        if role:
            queryset = queryset.filter(role=role)

        is_active = params.get("is_active")
        if is_active is not None and is_active != "":
            queryset = queryset.filter(is_active=is_active.strip().lower() in {"1", "true", "yes"})

        sort_by = params.get("sort_by", "date_joined")
        if sort_by not in {"date_joined", "username", "name", "role", "last_login"}:
            sort_by = "date_joined"
        prefix = "" if params.get("sort_order", "desc").lower() == "asc" else "-"
        return queryset.order_by(f"{prefix}{sort_by}")

    def perform_create(self, serializer):
        data = dict(serializer.validated_data)
        password = data.pop("password")
        serializer.instance = services.create_user(self.request.user, password=password, **data)

    def perform_update(self, serializer):
        user = serializer.save()
        record_audit(
            actor=self.request.user,
            action="accounts.user.update",
            entity_type="user",
            entity_id=user.id,
            payload={"username": user.username, "role": user.role, "is_active": user.is_active},
        )

    def destroy(self, request, *args, **kwargs):
        services.delete_user(request.user, self.get_object())
        return ok(message="User deleted successfully")

    @action(detail=True, methods=["post"], url_path="reset-password")
    def reset_password(self, request, pk=None):
        user = self.get_object()
        serializer = ResetPasswordSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        services.reset_password(request.user, user, **serializer.validated_data)
        return ok(message="Password reset successfully")

    @action(detail=False, methods=["get"])
    def statistics(self, request):
        return ok(services.user_statistics())
