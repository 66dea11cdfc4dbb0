"""
Authentication backend that signs traders in with their email address.
"""

from django.contrib.auth import get_user_model
from django.contrib.auth.backends import ModelBackend

User = get_user_model()


class EmailBackend(ModelBackend):
    """
    Authentication backend that lets traders log in with email and password.

    Deactivated accounts are refused here, before a token is ever issued.
    Frozen traders can still log in; the trading permissions restrict them.
    """

    def authenticate(self, request, username=None, password=None, **kwargs):
        """
        Authenticate a trader by email, ignoring case.

        Args:
            request: HTTP request object
            username: Email address (named username for compatibility)
            password: User password
            **kwargs: May carry ``email`` when called by the token serializer

        Returns:
            User object if the credentials match and the account is active,
            None otherwise
        """
        email = kwargs.get('email', username)

        if email is None or password is None:
            return None

        try:
            user = User.objects.get(email__iexact=email)
        except User.DoesNotExist:
            # Hash once anyway so unknown emails take as long as wrong passwords
            User().set_password(password)
            return None

        if user.check_password(password) and self.user_can_authenticate(user):
            return user

        return None
