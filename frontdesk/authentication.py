from rest_framework.authentication import TokenAuthentication


class BearerTokenAuthentication(TokenAuthentication):
    """Accepts `Authorization: Bearer <token>` instead of DRF's `Token <token>`."""

    keyword = "Bearer"
