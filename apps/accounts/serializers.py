from rest_framework import serializers

from apps.accounts.models import CREATABLE_ROLES, User
from apps.common.permissions import permissions_for


class UserSerializer(serializers.ModelSerializer):
    role_name = serializers.CharField(read_only=True)

    class Meta:
        model = User
        fields = ["id", "name", "username", "role", "role_name", "phone", "is_active", "last_login", "date_joined"]
        read_only_fields = fields


class SessionSerializer(serializers.Serializer):
    user = UserSerializer()
    permissions = serializers.ListField(child=serializers.CharField())
    role_name = serializers.CharField()

    @classmethod
    def for_user(cls, user):
        return cls({"user": user, "permissions": permissions_for(user), "role_name": user.role_name}).data


class LoginSerializer(serializers.Serializer):
    username = serializers.CharField()
    password = serializers.CharField(trim_whitespace=False)


class ChangePasswordSerializer(serializers.Serializer):
    current_password = serializers.CharField(trim_whitespace=False)
    password = serializers.CharField(trim_whitespace=False)
    password_confirmation = serializers.CharField(trim_whitespace=False)


class ProfileSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255, required=False)
    phone = serializers.CharField(max_length=20, required=False, allow_blank=True, allow_null=True)


class SuperAdminSetupSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    username = serializers.CharField(max_length=50)
    password = serializers.CharField(trim_whitespace=False)
    password_confirmation = serializers.CharField(trim_whitespace=False)
    phone = serializers.CharField(max_length=20, required=False, allow_blank=True, allow_null=True)

    def validate_username(self, value):
        if User.objects.filter(username=value).exists():
            raise serializers.ValidationError("The username has already been taken.")
        return value


class ManagedUserSerializer(serializers.ModelSerializer):
    """Super-admin side of user management."""

    role = serializers.ChoiceField(choices=[(role.value, role.label) for role in CREATABLE_ROLES])
    role_name = serializers.CharField(read_only=True)
    password = serializers.CharField(write_only=True, required=False, trim_whitespace=False)

    class Meta:
        model = User
        fields = ["id", "name", "username", "password", "role", "role_name", "phone", "is_active", "last_login", "date_joined"]
        read_only_fields = ["id", "role_name", "last_login", "date_joined"]
        extra_kwargs = {
            "name": {"required": True, "allow_blank": False},
            "username": {"max_length": 50},
        }

    def validate(self, attrs):
        if self.instance is None and not attrs.get("password"):
            raise serializers.ValidationError({"password": "This field is required."})
        if self.instance is not None:
            attrs.pop("password", None)
        return attrs


class ResetPasswordSerializer(serializers.Serializer):
    password = serializers.CharField(trim_whitespace=False)
