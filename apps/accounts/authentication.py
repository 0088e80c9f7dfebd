from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.tokens import RefreshToken

SESSION_CLAIM = "sid"


def issue_tokens(user):
    refresh = RefreshToken.for_user(user)
    refresh[SESSION_CLAIM] = str(user.session_key)
    return {"token": str(refresh.access_token), "refresh": str(refresh)}


class SessionJWTAuthentication(JWTAuthentication):
    """Bearer auth that only accepts tokens from the user's current session.

    Logging in again or logging out rotates ``User.session_key``, which
    revokes every token minted before.
    """

    def get_user(self, validated_token):
        user = super().get_user(validated_token)
        if validated_token.get(SESSION_CLAIM) != str(user.session_key):
            raise AuthenticationFailed("Session has ended, please log in again.", code="session_revoked")
        return user
