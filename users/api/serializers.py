from rest_framework import serializers

from users.models import Address, User
from users.services.auth_service import OTP_METHODS


class UserSerializer(serializers.ModelSerializer):
    mobile = serializers.CharField(source="phone", read_only=True)

    class Meta:
        model = User
        fields = ["id", "email", "first_name", "last_name", "mobile", "role", "email_verified"]


class SignUpRequestSerializer(serializers.Serializer):
    first_name = serializers.CharField(max_length=150)
    last_name = serializers.CharField(max_length=150)
    email = serializers.EmailField()
    mobile = serializers.CharField(max_length=20)
    password = serializers.CharField(write_only=True, min_length=6)


class RegisterRequestSerializer(SignUpRequestSerializer):
    otp_method = serializers.ChoiceField(choices=OTP_METHODS, default="email")


class VerifyOtpRequestSerializer(serializers.Serializer):
    email = serializers.EmailField()
    otp = serializers.CharField(max_length=6)


class ResendOtpRequestSerializer(serializers.Serializer):
    email = serializers.EmailField()
    otp_method = serializers.ChoiceField(choices=OTP_METHODS, default="email")


class SignInRequestSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)


class AuthResponseSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    token = serializers.CharField()
    refresh = serializers.CharField()
    user = UserSerializer()


class AddressSerializer(serializers.ModelSerializer):
    class Meta:
        model = Address
        fields = [
            "id",
            "type",
            "first_name",
            "last_name",
            "company",
            "address_line_1",
            "address_line_2",
            "city",
            "state",
            "postal_code",
            "country",
            "phone",
            "is_default",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]
        extra_kwargs = {"type": {"required": True}, "country": {"required": True}}
