"""
Shared fixtures for the Cognito auth client tests.

The cognito-idp client is a real boto3 client wrapped in a botocore Stubber,
so any call a test did not stub fails loudly.
"""

import time

import boto3
import jwt
import pytest
from botocore import UNSIGNED
from botocore.config import Config
from botocore.stub import Stubber

from cognito_auth_client.provider import CognitoUserPool
from cognito_auth_client.storage import MemoryStorage

USER_POOL_ID = 'us-east-1_TestPool1'
CLIENT_ID = 'testclientid1234567890'
KEY_PREFIX = f'CognitoIdentityServiceProvider.{CLIENT_ID}'
TEST_SIGNING_KEY = 'cognito-auth-client-test-key-0123456789'


def make_jwt(expires_in, username='jane@example.com', **claims):
    now = int(time.time())
    payload = {'sub': 'b5f9a1c2', 'username': username, 'iat': now, 'exp': now + expires_in}
    payload.update(claims)
    return jwt.encode(payload, TEST_SIGNING_KEY, algorithm='HS256')


def seed_session(storage, username='jane@example.com', expires_in=3600,
                 access_token=None, refresh_token='refresh-token'):
    """Put a signed-in user's tokens into storage and return the access token"""
    access_token = access_token or make_jwt(expires_in, username=username)
    storage.set_item(f'{KEY_PREFIX}.{username}.idToken', make_jwt(expires_in, username=username, email=username))
    storage.set_item(f'{KEY_PREFIX}.{username}.accessToken', access_token)
    storage.set_item(f'{KEY_PREFIX}.{username}.refreshToken', refresh_token)
    storage.set_item(f'{KEY_PREFIX}.LastAuthUser', username)
    return access_token


def auth_result(access_token, refresh_token=None, expires_in=3600):
    result = {
        'AccessToken': access_token,
        'IdToken': make_jwt(expires_in, email='jane@example.com'),
        'ExpiresIn': expires_in,
        'TokenType': 'Bearer',
    }
    if refresh_token:
        result['RefreshToken'] = refresh_token
    return {'AuthenticationResult': result}


def client_error(service_error_code, message='Cognito said no'):
    return {
        'service_error_code': service_error_code,
        'service_message': message,
        'http_status_code': 400,
    }


@pytest.fixture
def cognito_idp():
    return boto3.client('cognito-idp', region_name='us-east-1', config=Config(signature_version=UNSIGNED))


@pytest.fixture
def stubber(cognito_idp):
    with Stubber(cognito_idp) as stub:
        yield stub


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def pool(cognito_idp, storage):
    return CognitoUserPool(USER_POOL_ID, CLIENT_ID, storage=storage, client=cognito_idp)
