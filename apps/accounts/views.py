import logging

from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.exceptions import TokenError
from django.contrib.auth import get_user_model
from django.conf import settings
from django.shortcuts import get_object_or_404
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi

from .permissions import IsAdminRole
from .serializers import (
    LoginSerializer,
    ChangePasswordSerializer,
    UserProfileSerializer,
    UserSerializer,
)
from .services import AuthService

User = get_user_model()
logger = logging.getLogger(__name__)


def _set_cookie(response, key, value, max_age):
    response.set_cookie(
        key=key,
        value=value,
        max_age=max_age,
        path='/',
        domain=None,
        secure=settings.COOKIE_SECURE,
        httponly=settings.COOKIE_HTTPONLY,
        samesite=settings.COOKIE_SAMESITE,
    )


def set_jwt_cookies(response, refresh_token):
    """
    Helper function to set JWT tokens in HTTP-only cookies
    """
    _set_cookie(
        response,
        settings.COOKIE_ACCESS_TOKEN_NAME,
        str(refresh_token.access_token),
        int(settings.SIMPLE_JWT['ACCESS_TOKEN_LIFETIME'].total_seconds()),
    )
    _set_cookie(
        response,
        settings.COOKIE_REFRESH_TOKEN_NAME,
        str(refresh_token),
        int(settings.SIMPLE_JWT['REFRESH_TOKEN_LIFETIME'].total_seconds()),
    )
    return response


def clear_jwt_cookies(response):
    """
    Helper function to clear JWT cookies (for logout)
    """
    _set_cookie(response, settings.COOKIE_ACCESS_TOKEN_NAME, '', 0)
    _set_cookie(response, settings.COOKIE_REFRESH_TOKEN_NAME, '', 0)
    return response


class LoginView(APIView):
    """
    API endpoint to log in with email and password

    On success both JWT tokens are set as HTTP-only cookies; the access
    token is also returned in the body for API clients.
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    @swagger_auto_schema(
        operation_description="Log in with email and password. Sets the JWT cookies.",
        request_body=LoginSerializer,
        responses={
            200: openapi.Response(description="Login successful", schema=UserProfileSerializer),
            400: openapi.Response(description="Invalid request"),
            401: openapi.Response(description="Invalid credentials or deactivated account"),
        },
        tags=['Authentication']
    )
    def post(self, request):
        serializer = LoginSerializer(data=request.data)

        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            user = AuthService.login(
                serializer.validated_data['email'],
                serializer.validated_data['password']
            )
        except ValueError as e:
            logger.info(f"Failed login for {serializer.validated_data['email']}: {e}")
            return Response({'error': str(e)}, status=status.HTTP_401_UNAUTHORIZED)

        refresh = RefreshToken.for_user(user)
        response = Response(
            {
                'message': 'Login successful',
                'token': str(refresh.access_token),
                'user': UserProfileSerializer(user).data
            },
            status=status.HTTP_200_OK
        )
        set_jwt_cookies(response, refresh)
        return response


class LogoutView(APIView):
    """
    API endpoint to logout user
    Clears JWT cookies
    """
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Log out and clear the JWT cookies",
        responses={
            200: openapi.Response(description="Logged out"),
            401: openapi.Response(description="Authentication required"),
        },
        security=[{'Bearer': []}],
        tags=['Authentication']
    )
    def post(self, request):
        response = Response(
            {'message': 'Logged out successfully'},
            status=status.HTTP_200_OK
        )
        clear_jwt_cookies(response)
        return response


class RefreshTokenView(APIView):
    """
    API endpoint to refresh access token
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    @swagger_auto_schema(
        operation_description="Refresh the access token using the refresh token cookie",
        responses={
            200: openapi.Response(description="Token refreshed"),
            401: openapi.Response(description="Missing or invalid refresh token"),
        },
        tags=['Authentication']
    )
    def post(self, request):
        refresh_token = request.COOKIES.get(settings.COOKIE_REFRESH_TOKEN_NAME)

        if not refresh_token:
            return Response(
                {'error': 'Refresh token not found'},
                status=status.HTTP_401_UNAUTHORIZED
            )

        try:
            refresh = RefreshToken(refresh_token)
        except TokenError:
            return Response(
                {'error': 'Invalid refresh token'},
                status=status.HTTP_401_UNAUTHORIZED
            )

        response = Response(
            {'message': 'Token refreshed successfully'},
            status=status.HTTP_200_OK
        )
        _set_cookie(
            response,
            settings.COOKIE_ACCESS_TOKEN_NAME,
            str(refresh.access_token),
            int(settings.SIMPLE_JWT['ACCESS_TOKEN_LIFETIME'].total_seconds()),
        )
        return response


class UserProfileView(APIView):
    """
    API endpoint to view and update the logged in user's profile
    """
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Current user profile",
        responses={200: UserProfileSerializer, 401: openapi.Response(description="Authentication required")},
        security=[{'Bearer': []}],
        tags=['User Profile']
    )
    def get(self, request):
        serializer = UserProfileSerializer(request.user)
        return Response(serializer.data, status=status.HTTP_200_OK)

    @swagger_auto_schema(
        operation_description="Update name, phone or email of the current user",
        request_body=UserProfileSerializer,
        responses={200: UserProfileSerializer, 400: openapi.Response(description="Invalid data")},
        security=[{'Bearer': []}],
        tags=['User Profile']
    )
    def patch(self, request):
        serializer = UserProfileSerializer(
            request.user,
            data=request.data,
            partial=True
        )

        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data, status=status.HTTP_200_OK)

        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


class ChangePasswordView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Change the current user's password",
        request_body=ChangePasswordSerializer,
        responses={200: openapi.Response(description="Password changed"), 400: openapi.Response(description="Invalid data")},
        security=[{'Bearer': []}],
        tags=['User Profile']
    )
    def put(self, request):
        serializer = ChangePasswordSerializer(data=request.data)

        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            AuthService.change_password(
                request.user,
                serializer.validated_data['current_password'],
                serializer.validated_data['new_password']
            )
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response({'message': 'Password changed successfully'}, status=status.HTTP_200_OK)


class UserListCreateView(APIView):
    """
    Administrators list and create staff accounts
    """
    permission_classes = [IsAdminRole]

    @swagger_auto_schema(
        operation_description="List users, optionally filtered by branch",
        manual_parameters=[openapi.Parameter('branch', openapi.IN_QUERY, type=openapi.TYPE_INTEGER)],
        responses={200: UserSerializer(many=True)},
        security=[{'Bearer': []}],
        tags=['Users']
    )
    def get(self, request):
        users = User.objects.all().order_by('email')
        branch_id = request.query_params.get('branch')
        if branch_id:
            users = users.filter(branch_id=branch_id)

        serializer = UserSerializer(users, many=True)
        return Response({'count': users.count(), 'results': serializer.data}, status=status.HTTP_200_OK)

    @swagger_auto_schema(
        operation_description="Create a staff account",
        request_body=UserSerializer,
        responses={201: UserSerializer, 400: openapi.Response(description="Invalid data")},
        security=[{'Bearer': []}],
        tags=['Users']
    )
    def post(self, request):
        serializer = UserSerializer(data=request.data)

        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        user = serializer.save()
        logger.info(f"User {user.email} created by {request.user.email}")
        return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)


class UserDetailView(APIView):
    permission_classes = [IsAdminRole]

    @swagger_auto_schema(
        operation_description="Update a staff account",
        request_body=UserSerializer,
        responses={200: UserSerializer, 400: openapi.Response(description="Invalid data")},
        security=[{'Bearer': []}],
        tags=['Users']
    )
    def patch(self, request, pk):
        user = get_object_or_404(User, pk=pk)
        serializer = UserSerializer(user, data=request.data, partial=True)

        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        serializer.save()
        return Response(serializer.data, status=status.HTTP_200_OK)

    @swagger_auto_schema(
        operation_description="Deactivate a staff account",
        responses={204: openapi.Response(description="Deactivated")},
        security=[{'Bearer': []}],
        tags=['Users']
    )
    def delete(self, request, pk):
        user = get_object_or_404(User, pk=pk)
        if user.pk == request.user.pk:
            return Response({'error': 'You cannot deactivate your own account'}, status=status.HTTP_400_BAD_REQUEST)

        user.is_active = False
        user.save(update_fields=['is_active', 'updated_at'])
        return Response(status=status.HTTP_204_NO_CONTENT)
