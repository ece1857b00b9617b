"""
Errors raised by the Cognito auth client.

Failures reported by Cognito itself arrive as botocore ClientError and are
passed through unchanged; the classes here cover local conditions only.
"""

from botocore.exceptions import ClientError


class CognitoAuthError(Exception):
    """Base class for errors raised by this package"""


class NotAuthenticatedError(CognitoAuthError):
    """Raised when an operation needs tokens that are not cached"""


class UnsupportedChallengeError(CognitoAuthError):
    def __init__(self, challenge_name):
        super().__init__(f"Unsupported challenge: {challenge_name}")
        self.challenge_name = challenge_name


MESSAGES = {
    'NotAuthorizedException': "Invalid username or password",
    'UserNotFoundException': "User not found",
    'CodeMismatchException': "Invalid verification code",
    'ExpiredCodeException': "Verification code has expired",
    'LimitExceededException': "Attempt limit exceeded, please try again later",
    'InvalidPasswordException': "Password does not meet the pool's password policy",
    'UsernameExistsException': "User already exists",
}


def describe_error(exc):
    """Return a short human readable message for an error"""
    if isinstance(exc, ClientError):
        error = exc.response.get('Error', {})
        code = error.get('Code', '')
        if code in MESSAGES:
            return MESSAGES[code]
        return error.get('Message') or str(exc)
    return str(exc)
