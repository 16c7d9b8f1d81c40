from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError
from django.conf import settings


class CookieJWTAuthentication(JWTAuthentication):
    """
    JWT authentication that reads the access token from the HTTP-only cookie
    set at login, falling back to the Authorization header for API clients.
    """

    def get_raw_token_from_request(self, request):
        raw_token = request.COOKIES.get(settings.COOKIE_ACCESS_TOKEN_NAME)
        if raw_token:
            return raw_token.encode() if isinstance(raw_token, str) else raw_token

        header = self.get_header(request)
        if header is None:
            return None
        return self.get_raw_token(header)

    def authenticate(self, request):
        raw_token = self.get_raw_token_from_request(request)
        if raw_token is None:
            return None

        try:
            validated_token = self.get_validated_token(raw_token)
        except (InvalidToken, TokenError):
            # Stale cookie: let the next authenticator or the permission check answer
            return None

        user = self.get_user(validated_token)
        if not user.is_active:
            return None
        return user, validated_token
