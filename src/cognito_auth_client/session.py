"""
Cognito tokens and the session bundling them.
"""

import enum

import jwt


class AuthChallenge(enum.Enum):
    """Non-error outcomes of authentication that do not yield a session"""

    NEW_PASSWORD_REQUIRED = 'new-password-required'


NEW_PASSWORD_REQUIRED = AuthChallenge.NEW_PASSWORD_REQUIRED


class CognitoJwtToken:
    """A JWT issued by Cognito. The signature is not verified here."""

    def __init__(self, jwt_token):
        self.jwt_token = jwt_token
        self.payload = self.decode_payload(jwt_token)

    @staticmethod
    def decode_payload(token):
        if not token:
            return {}
        try:
            return jwt.decode(token, options={'verify_signature': False, 'verify_exp': False})
        except jwt.DecodeError:
            return {}

    def get_expiration(self):
        """Expiration as seconds since the epoch, 0 when the token has none"""
        return int(self.payload.get('exp', 0))

    def __repr__(self):
        return f"{type(self).__name__}(exp={self.get_expiration()})"


class CognitoAccessToken(CognitoJwtToken):
    pass


class CognitoIdToken(CognitoJwtToken):
    pass


class CognitoRefreshToken:
    # Refresh tokens are opaque to the client
    def __init__(self, token):
        self.token = token

    def __repr__(self):
        return 'CognitoRefreshToken(...)'


class CognitoUserSession:
    def __init__(self, id_token, access_token, refresh_token):
        self.id_token = id_token
        self.access_token = access_token
        self.refresh_token = refresh_token

    @classmethod
    def from_authentication_result(cls, result, refresh_token=None):
        """Build a session from an ``AuthenticationResult`` returned by cognito-idp"""
        return cls(
            id_token=CognitoIdToken(result.get('IdToken')),
            access_token=CognitoAccessToken(result['AccessToken']),
            refresh_token=CognitoRefreshToken(result.get('RefreshToken') or refresh_token),
        )

    def __repr__(self):
        return f"CognitoUserSession(access_token={self.access_token!r})"
