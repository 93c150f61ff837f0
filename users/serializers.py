from rest_framework import serializers
from rest_framework.exceptions import AuthenticationFailed
from django.contrib.auth import get_user_model
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from cores.audit import record_event

User = get_user_model()


class UserSerializer(serializers.ModelSerializer):
    registration_id = serializers.CharField(read_only=True)

    class Meta:
        model = User
        fields = ['id', 'email', 'first_name', 'last_name', 'role', 'school_name', 'registration_id']
        read_only_fields = fields


class RoleTokenObtainPairSerializer(TokenObtainPairSerializer):
    """Email + password login that only admits one role."""
    role = None

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['role'] = user.role
        return token

    def validate(self, attrs):
        data = super().validate(attrs)
        if self.role and self.user.role != self.role:
            # Same message as a wrong password, so roles can't be probed
            raise AuthenticationFailed("Invalid email or password")
        data['user'] = UserSerializer(self.user).data
        record_event('LOGIN', target=self.user, actor=self.user, request=self.context.get('request'),
                     details=f"{self.role} login")
        return data


class AdminLoginSerializer(RoleTokenObtainPairSerializer):
    role = User.Role.ADMIN


class SchoolLoginSerializer(RoleTokenObtainPairSerializer):
    role = User.Role.SCHOOL


class AdminSetupSerializer(serializers.Serializer):
    setup_key = serializers.CharField()
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, min_length=6)
    name = serializers.CharField(required=False, allow_blank=True, max_length=150)


class AdminResetPasswordSerializer(serializers.Serializer):
    setup_key = serializers.CharField()
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, min_length=6)


class SchoolAccountSerializer(serializers.Serializer):
    """Signup and password reset both prove ownership of a paid registration."""
    registration = serializers.CharField(max_length=64)
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, min_length=6)
