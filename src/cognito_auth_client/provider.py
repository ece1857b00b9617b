"""
Callback style handles over the Cognito User Pool API.

``CognitoUserPool`` identifies a pool and app client, ``CognitoUser`` a single
username inside it. Every operation reports its outcome through callbacks,
either an ``AuthCallbacks`` pair or a ``callback(error, result)`` function.
Cognito errors (botocore ClientError) are handed to the failure callback
unchanged.
"""

import json
import logging
import re

import boto3
from botocore import UNSIGNED
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .errors import NotAuthenticatedError, UnsupportedChallengeError
from .session import CognitoUserSession
from .storage import MemoryStorage

logger = logging.getLogger(__name__)

USER_POOL_ID_PATTERN = re.compile(r'^[\w-]+_[0-9a-zA-Z]+$')

PROVIDER_ERRORS = (ClientError, BotoCoreError)


class AuthenticationDetails:
    def __init__(self, username, password):
        self.username = username
        self.password = password


class AuthCallbacks:
    """Success/failure pair passed to user operations.

    ``new_password_required`` is only used by authentication and receives the
    user's current attributes and the attributes the pool requires.
    """

    def __init__(self, on_success, on_failure, new_password_required=None):
        self.on_success = on_success
        self.on_failure = on_failure
        self.new_password_required = new_password_required


class CognitoUserPool:
    def __init__(self, user_pool_id, client_id, storage=None, region=None, client=None):
        if not user_pool_id or not USER_POOL_ID_PATTERN.match(user_pool_id):
            raise ValueError(f"Invalid user pool id: {user_pool_id!r}")
        if not client_id:
            raise ValueError("Client id is required")

        self.user_pool_id = user_pool_id
        self.client_id = client_id
        self.storage = storage if storage is not None else MemoryStorage()

        # Extract region from user pool ID if not provided
        self.region = region or user_pool_id.split('_')[0]

        # User pool calls made with a client id are public, so requests go unsigned
        self.client = client or boto3.client(
            'cognito-idp',
            region_name=self.region,
            config=Config(signature_version=UNSIGNED),
        )

    @property
    def key_prefix(self):
        return f'CognitoIdentityServiceProvider.{self.client_id}'

    @property
    def last_user_key(self):
        return f'{self.key_prefix}.LastAuthUser'

    def get_current_user(self):
        """Return a handle for the last authenticated user, or None"""
        username = self.storage.get_item(self.last_user_key)
        if not username:
            return None
        return CognitoUser(username, self)


class CognitoUser:
    def __init__(self, username, pool):
        self.username = username
        self.pool = pool
        self._challenge_session = None

    def __repr__(self):
        return f"CognitoUser({self.username!r})"

    @property
    def client(self):
        return self.pool.client

    @property
    def storage(self):
        return self.pool.storage

    def _key(self, name):
        return f'{self.pool.key_prefix}.{self.username}.{name}'

    # Token cache

    def cache_tokens(self, session):
        self.storage.set_item(self._key('idToken'), session.id_token.jwt_token)
        self.storage.set_item(self._key('accessToken'), session.access_token.jwt_token)
        self.storage.set_item(self._key('refreshToken'), session.refresh_token.token)
        self.storage.set_item(self.pool.last_user_key, self.username)

    def clear_cached_tokens(self):
        for name in ('idToken', 'accessToken', 'refreshToken'):
            self.storage.remove_item(self._key(name))
        if self.storage.get_item(self.pool.last_user_key) == self.username:
            self.storage.remove_item(self.pool.last_user_key)

    def get_cached_session(self):
        access_token = self.storage.get_item(self._key('accessToken'))
        if not access_token:
            return None
        return CognitoUserSession.from_authentication_result({
            'IdToken': self.storage.get_item(self._key('idToken')),
            'AccessToken': access_token,
            'RefreshToken': self.storage.get_item(self._key('refreshToken')),
        })

    # Authentication

    def authenticate_user(self, details, callbacks):
        """Authenticate with USER_PASSWORD_AUTH"""
        logger.debug("Authenticating %s", self.username)
        try:
            response = self.client.initiate_auth(
                ClientId=self.pool.client_id,
                AuthFlow='USER_PASSWORD_AUTH',
                AuthParameters={
                    'USERNAME': details.username,
                    'PASSWORD': details.password
                }
            )
        except PROVIDER_ERRORS as e:
            callbacks.on_failure(e)
            return
        self._handle_auth_response(response, callbacks)

    def complete_new_password_challenge(self, new_password, attributes, callbacks):
        """Answer a pending NEW_PASSWORD_REQUIRED challenge"""
        if not self._challenge_session:
            callbacks.on_failure(NotAuthenticatedError("No new password challenge is pending"))
            return

        responses = {
            'USERNAME': self.username,
            'NEW_PASSWORD': new_password
        }
        for name, value in (attributes or {}).items():
            responses[f'userAttributes.{name}'] = value

        try:
            response = self.client.respond_to_auth_challenge(
                ClientId=self.pool.client_id,
                ChallengeName='NEW_PASSWORD_REQUIRED',
                Session=self._challenge_session,
                ChallengeResponses=responses
            )
        except PROVIDER_ERRORS as e:
            callbacks.on_failure(e)
            return
        self._handle_auth_response(response, callbacks)

    def _handle_auth_response(self, response, callbacks):
        challenge = response.get('ChallengeName')
        if challenge:
            if challenge == 'NEW_PASSWORD_REQUIRED' and callbacks.new_password_required:
                self._challenge_session = response.get('Session')
                params = response.get('ChallengeParameters', {})
                user_attributes = json.loads(params.get('userAttributes') or '{}')
                required_attributes = json.loads(params.get('requiredAttributes') or '[]')
                callbacks.new_password_required(user_attributes, required_attributes)
            else:
                callbacks.on_failure(UnsupportedChallengeError(challenge))
            return

        self._challenge_session = None
        session = CognitoUserSession.from_authentication_result(response['AuthenticationResult'])
        self.cache_tokens(session)
        callbacks.on_success(session)

    # Session

    def get_session(self, callback):
        """Return the cached session through ``callback(error, session)``"""
        session = self.get_cached_session()
        if session is None:
            callback(NotAuthenticatedError(f"No cached session for {self.username}"), None)
            return
        callback(None, session)

    def refresh_session(self, refresh_token, callback):
        logger.debug("Refreshing session for %s", self.username)
        try:
            response = self.client.initiate_auth(
                ClientId=self.pool.client_id,
                AuthFlow='REFRESH_TOKEN_AUTH',
                AuthParameters={'REFRESH_TOKEN': refresh_token.token}
            )
        except PROVIDER_ERRORS as e:
            callback(e, None)
            return

        # Cognito only returns a refresh token when it rotates it
        session = CognitoUserSession.from_authentication_result(
            response['AuthenticationResult'], refresh_token=refresh_token.token
        )
        self.cache_tokens(session)
        callback(None, session)

    def sign_out(self, callback):
        """Revoke the refresh token and drop cached tokens.

        Cached tokens are removed even when revocation fails.
        """
        refresh_token = self.storage.get_item(self._key('refreshToken'))
        try:
            if refresh_token:
                self.client.revoke_token(Token=refresh_token, ClientId=self.pool.client_id)
        except PROVIDER_ERRORS as e:
            self.clear_cached_tokens()
            callback(e)
            return
        self.clear_cached_tokens()
        callback(None)

    # Attributes, registration and password recovery

    def verify_attribute(self, name, code, callbacks):
        access_token = self.storage.get_item(self._key('accessToken'))
        if not access_token:
            callbacks.on_failure(NotAuthenticatedError(f"{self.username} is not signed in"))
            return
        try:
            self.client.verify_user_attribute(
                AccessToken=access_token,
                AttributeName=name,
                Code=code
            )
        except PROVIDER_ERRORS as e:
            callbacks.on_failure(e)
            return
        callbacks.on_success('SUCCESS')

    def resend_confirmation_code(self, callback):
        try:
            response = self.client.resend_confirmation_code(
                ClientId=self.pool.client_id,
                Username=self.username
            )
        except PROVIDER_ERRORS as e:
            callback(e, None)
            return
        callback(None, response.get('CodeDeliveryDetails', {}))

    def confirm_registration(self, code, callback):
        try:
            self.client.confirm_sign_up(
                ClientId=self.pool.client_id,
                Username=self.username,
                ConfirmationCode=code
            )
        except PROVIDER_ERRORS as e:
            callback(e, None)
            return
        callback(None, 'SUCCESS')

    def forgot_password(self, callbacks):
        try:
            response = self.client.forgot_password(
                ClientId=self.pool.client_id,
                Username=self.username
            )
        except PROVIDER_ERRORS as e:
            callbacks.on_failure(e)
            return
        callbacks.on_success(response.get('CodeDeliveryDetails', {}))

    def confirm_password(self, code, new_password, callbacks):
        try:
            self.client.confirm_forgot_password(
                ClientId=self.pool.client_id,
                Username=self.username,
                ConfirmationCode=code,
                Password=new_password
            )
        except PROVIDER_ERRORS as e:
            callbacks.on_failure(e)
            return
        callbacks.on_success('SUCCESS')
