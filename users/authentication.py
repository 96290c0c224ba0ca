from rest_framework_simplejwt.authentication import JWTAuthentication


class AuthorizeHeaderJWTAuthentication(JWTAuthentication):
    """
    JWT authentication that also accepts the token in an `Authorize` header.

    The standard header keeps working:
        Authorization: Bearer <access_token>
    Dashboards that cannot set `Authorization` may send the bare token:
        Authorize: <access_token>
    """

    def get_header(self, request):
        header = request.META.get("HTTP_AUTHORIZE")  # Django converts headers to HTTP_<NAME>
        if header is None:
            return super().get_header(request)
        if isinstance(header, str):
            header = header.encode("iso-8859-1")
        return b"Bearer " + header.strip()
