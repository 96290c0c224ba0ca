import logging

from rest_framework import generics
from rest_framework.permissions import AllowAny, IsAuthenticated

from users.serializers import UserSerializer

logger = logging.getLogger(__name__)


class CreateUserView(generics.CreateAPIView):
    """Self-service registration. New accounts are always borrowers."""

    serializer_class = UserSerializer
    authentication_classes = ()
    permission_classes = (AllowAny,)

    def perform_create(self, serializer):
        user = serializer.save()
        logger.info("Borrower account %s registered (%s)", user.id, user.email)


class ManageUserView(generics.RetrieveUpdateAPIView):
    serializer_class = UserSerializer
    permission_classes = (IsAuthenticated,)

    def get_object(self):
        return self.request.user
