from django.contrib.auth import get_user_model
from rest_framework import status, permissions
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, OpenApiResponse

from users.api.serializers import (
    AddressSerializer,
    AuthResponseSerializer,
    RegisterRequestSerializer,
    ResendOtpRequestSerializer,
    SignInRequestSerializer,
    SignUpRequestSerializer,
    UserSerializer,
    VerifyOtpRequestSerializer,
)
from users.services.address_service import AddressService
from users.services.auth_service import AccountExists, AuthService, SignInFailed

User = get_user_model()


def _auth_response(user, **extra):
    return Response({
        "success": True,
        **AuthService.tokens_for(user),
        "user": UserSerializer(user).data,
        **extra,
    })


@extend_schema(
    tags=["Auth"],
    summary="Create an active, verified account",
    request=SignUpRequestSerializer,
    responses={200: OpenApiResponse(description="Account created"), 409: OpenApiResponse(description="Already exists")},
)
@api_view(["POST"])
@permission_classes([permissions.AllowAny])
def signup(request):
    ser = SignUpRequestSerializer(data=request.data)
    ser.is_valid(raise_exception=True)

    try:
        user = AuthService.create_account(**ser.validated_data, verified=True)
    except AccountExists as e:
        return Response({"error": str(e)}, status=status.HTTP_409_CONFLICT)

    return Response({
        "success": True,
        "message": "Account created successfully! Please sign in.",
        "user_id": user.id,
    })


@extend_schema(
    tags=["Auth"],
    summary="Create an inactive account and send a verification OTP",
    request=RegisterRequestSerializer,
    responses={201: OpenApiResponse(description="OTP sent"), 409: OpenApiResponse(description="Already exists")},
)
@api_view(["POST"])
@permission_classes([permissions.AllowAny])
def register(request):
    ser = RegisterRequestSerializer(data=request.data)
    ser.is_valid(raise_exception=True)
    data = dict(ser.validated_data)
    otp_method = data.pop("otp_method")

    try:
        user = AuthService.create_account(**data, verified=False)
    except AccountExists as e:
        return Response({"error": str(e)}, status=status.HTTP_409_CONFLICT)

    delivered = AuthService.issue_otp(user, otp_method)
    return Response(
        {
            "success": True,
            "message": f"Account created. Please verify the OTP sent to your {otp_method}.",
            "user_id": user.id,
            "otp_sent": delivered,
        },
        status=status.HTTP_201_CREATED,
    )


@extend_schema(
    tags=["Auth"],
    summary="Verify OTP, activate account and issue tokens",
    request=VerifyOtpRequestSerializer,
    responses={200: AuthResponseSerializer, 400: OpenApiResponse(description="Invalid or expired OTP")},
)
@api_view(["POST"])
@permission_classes([permissions.AllowAny])
def verify_otp(request):
    ser = VerifyOtpRequestSerializer(data=request.data)
    ser.is_valid(raise_exception=True)

    try:
        user = AuthService.verify_otp(**ser.validated_data)
    except ValueError as e:
        return Response({"error": str(e)}, status=status.HTTP_400_BAD_REQUEST)

    return _auth_response(user, message="Account verified successfully!")


@extend_schema(
    tags=["Auth"],
    summary="Generate and resend a verification OTP",
    request=ResendOtpRequestSerializer,
    responses={200: OpenApiResponse(description="OTP resent"), 404: OpenApiResponse(description="User not found")},
)
@api_view(["POST"])
@permission_classes([permissions.AllowAny])
def resend_otp(request):
    ser = ResendOtpRequestSerializer(data=request.data)
    ser.is_valid(raise_exception=True)

    user = User.objects.filter(email__iexact=ser.validated_data["email"]).first()
    if user is None:
        return Response({"error": "User not found"}, status=status.HTTP_404_NOT_FOUND)

    otp_method = ser.validated_data["otp_method"]
    delivered = AuthService.issue_otp(user, otp_method)
    return Response({
        "success": True,
        "message": f"OTP resent to your {otp_method}",
        "otp_sent": delivered,
    })


@extend_schema(
    tags=["Auth"],
    summary="Sign in with email and password",
    request=SignInRequestSerializer,
    responses={200: AuthResponseSerializer, 401: OpenApiResponse(description="Invalid credentials")},
)
@api_view(["POST"])
@permission_classes([permissions.AllowAny])
def signin(request):
    ser = SignInRequestSerializer(data=request.data)
    ser.is_valid(raise_exception=True)

    try:
        user = AuthService.sign_in(**ser.validated_data)
    except SignInFailed as e:
        return Response({"error": str(e)}, status=status.HTTP_401_UNAUTHORIZED)

    return _auth_response(user)


@extend_schema(tags=["Auth"], summary="Current user profile", responses={200: UserSerializer})
@api_view(["GET"])
@permission_classes([permissions.IsAuthenticated])
def me(request):
    return Response(UserSerializer(request.user).data)


@extend_schema(
    methods=["GET"],
    tags=["Addresses"],
    summary="Current user's address book (default first)",
    responses={200: OpenApiResponse(description='{"addresses": [...]}')},
)
@extend_schema(
    methods=["POST"],
    tags=["Addresses"],
    summary="Add an address (a new default replaces the previous default of that type)",
    request=AddressSerializer,
    responses={201: OpenApiResponse(description='{"message", "address_id"}'), 400: OpenApiResponse(description="Missing required fields")},
)
@api_view(["GET", "POST"])
@permission_classes([permissions.IsAuthenticated])
def addresses(request):
    if request.method == "GET":
        items = AddressService.addresses_for(request.user)
        return Response({"addresses": AddressSerializer(items, many=True).data})

    ser = AddressSerializer(data=request.data)
    ser.is_valid(raise_exception=True)
    address = AddressService.create_address(request.user, ser.validated_data)
    return Response(
        {"message": "Address created successfully", "address_id": address.id},
        status=status.HTTP_201_CREATED,
    )
