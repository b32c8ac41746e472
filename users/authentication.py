from rest_framework_simplejwt.authentication import JWTAuthentication


class AuthorizeHeaderJWTAuthentication(JWTAuthentication):
    """
    Reads the access token from the `Authorize` header that the library
    front-end sends, instead of `Authorization: Bearer ...`.
    Tokens are issued elsewhere; this class only verifies them.
    Example request:
        Authorize: <access_token>
    """

    def get_header(self, request):
        header = request.META.get("HTTP_AUTHORIZE")
        if isinstance(header, str):
            header = header.encode("iso-8859-1")
        return header

    def get_raw_token(self, header):
        if not header:
            return None
        token = header.decode("utf-8").strip()
        if token.lower().startswith("bearer "):
            token = token[7:].strip()
        return token or None
