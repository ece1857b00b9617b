"""Cognito Auth Client

Awaitable sign-in, session token, email verification and password recovery
operations for an AWS Cognito User Pool.

Main components:
- client: the asynchronous AWSAuthClient
- provider: callback style user pool and user handles over boto3
- storage: token storage shared by both
"""

from .client import AWSAuthClient
from .errors import CognitoAuthError, NotAuthenticatedError, UnsupportedChallengeError
from .provider import AuthCallbacks, AuthenticationDetails, CognitoUser, CognitoUserPool
from .session import NEW_PASSWORD_REQUIRED, AuthChallenge, CognitoUserSession
from .storage import FileStorage, MemoryStorage

__version__ = "1.0.0"

__all__ = [
    "AWSAuthClient",
    "AuthCallbacks",
    "AuthChallenge",
    "AuthenticationDetails",
    "CognitoAuthError",
    "CognitoUser",
    "CognitoUserPool",
    "CognitoUserSession",
    "FileStorage",
    "MemoryStorage",
    "NEW_PASSWORD_REQUIRED",
    "NotAuthenticatedError",
    "UnsupportedChallengeError",
]
