"""
Asynchronous facade over the Cognito user pool handles.

Every operation first waits for the token storage to finish loading, then
issues one callback style call against a ``CognitoUser`` and turns whichever
callback fires first into the awaited result.
"""

import asyncio
import concurrent.futures
import logging
import time

from .errors import CognitoAuthError
from .provider import AuthCallbacks, AuthenticationDetails, CognitoUser, CognitoUserPool
from .session import NEW_PASSWORD_REQUIRED
from .storage import MemoryStorage

logger = logging.getLogger(__name__)

# Tokens expiring within this many seconds are refreshed before use
EXPIRY_MARGIN_SECONDS = 15


def is_token_valid(expiration, now=None):
    now = int(time.time()) if now is None else now
    adjusted = now + EXPIRY_MARGIN_SECONDS
    return adjusted < expiration


def _node_callback(resolve, reject):
    def callback(error, result=None):
        if error:
            reject(error)
        else:
            resolve(result)
    return callback


class AWSAuthClient:
    """Awaitable authentication operations for a single Cognito app client.

    >>> client = AWSAuthClient('eu-west-1_AbCdEf123', '1example23456789')
    >>> await client.authenticate_user('jane@example.com', 'secret')
    >>> token = await client.get_current_session_token()
    """

    def __init__(self, user_pool_id, client_id, storage=None, region=None, cognito_idp=None):
        self.storage = storage if storage is not None else MemoryStorage()
        self.user_pool = CognitoUserPool(
            user_pool_id,
            client_id,
            storage=self.storage,
            region=region,
            client=cognito_idp,
        )
        self._users = {}

        # Start loading storage now; operations wait on this future
        self._storage_ready = concurrent.futures.Future()
        sync = getattr(self.storage, 'sync', None)
        if callable(sync):
            sync(self._on_storage_synced)
        else:
            self._storage_ready.set_result(None)

    def _on_storage_synced(self, error=None):
        if self._storage_ready.done():
            return
        if error:
            self._storage_ready.set_exception(error)
        else:
            self._storage_ready.set_result(None)

    async def _ready(self):
        await asyncio.wrap_future(self._storage_ready)

    def _cognito_user(self, username):
        user = self._users.get(username)
        if user is None:
            user = CognitoUser(username, self.user_pool)
            self._users[username] = user
        return user

    async def _call(self, operation):
        """Run ``operation(resolve, reject)`` off the event loop and await its outcome.

        The first callback to fire settles the result; later ones are ignored.
        """
        loop = asyncio.get_running_loop()
        future = loop.create_future()

        def settle(result, error):
            if future.done():
                return
            if error is not None:
                future.set_exception(error)
            else:
                future.set_result(result)

        def resolve(result=None):
            loop.call_soon_threadsafe(settle, result, None)

        def reject(error):
            if error is None:
                error = CognitoAuthError("Operation failed without an error")
            loop.call_soon_threadsafe(settle, None, error)

        def run():
            try:
                operation(resolve, reject)
            except Exception as e:
                reject(e)

        await loop.run_in_executor(None, run)
        return await future

    async def sign_out(self):
        """Sign out the current user. Failures are logged, never raised."""
        try:
            await self._ready()
            user = self.user_pool.get_current_user()
            if not user:
                return
            await self._call(lambda resolve, reject: user.sign_out(_node_callback(resolve, reject)))
        except Exception:
            # TODO: decide with product whether sign-out failures should reach the caller
            logger.exception("SignOut error")

    async def verify_user_email(self, username, code):
        await self._ready()
        user = self._cognito_user(username)
        await self._call(lambda resolve, reject: user.verify_attribute(
            'email', code, AuthCallbacks(on_success=resolve, on_failure=reject)
        ))
        return True

    async def resend_verification_code(self, username):
        await self._ready()
        user = self._cognito_user(username)
        return await self._call(
            lambda resolve, reject: user.resend_confirmation_code(_node_callback(resolve, reject))
        )

    async def confirm_registration(self, username, code):
        await self._ready()
        user = self._cognito_user(username)
        return await self._call(
            lambda resolve, reject: user.confirm_registration(code, _node_callback(resolve, reject))
        )

    async def forgot_password(self, username):
        await self._ready()
        user = self._cognito_user(username)
        return await self._call(lambda resolve, reject: user.forgot_password(
            AuthCallbacks(on_success=resolve, on_failure=reject)
        ))

    async def forgot_password_submit(self, username, verification_code, password):
        await self._ready()
        user = self._cognito_user(username)
        return await self._call(lambda resolve, reject: user.confirm_password(
            verification_code, password, AuthCallbacks(on_success=resolve, on_failure=reject)
        ))

    async def authenticate_user(self, email, password):
        """Sign in, returning the session or ``NEW_PASSWORD_REQUIRED``"""
        await self._ready()
        details = AuthenticationDetails(username=email, password=password)
        user = self._cognito_user(email)
        return await self._call(lambda resolve, reject: user.authenticate_user(
            details,
            AuthCallbacks(
                on_success=resolve,
                on_failure=reject,
                new_password_required=lambda user_attributes, required_attributes: resolve(
                    NEW_PASSWORD_REQUIRED
                ),
            ),
        ))

    async def complete_new_password(self, email, new_password, attributes=None):
        """Finish a sign-in that returned ``NEW_PASSWORD_REQUIRED``"""
        await self._ready()
        user = self._cognito_user(email)
        return await self._call(lambda resolve, reject: user.complete_new_password_challenge(
            new_password,
            attributes,
            AuthCallbacks(
                on_success=resolve,
                on_failure=reject,
                new_password_required=lambda user_attributes, required_attributes: resolve(
                    NEW_PASSWORD_REQUIRED
                ),
            ),
        ))

    async def get_current_session_token(self):
        """Return a usable access token for the signed-in user, or None"""
        await self._ready()
        current_user = self.user_pool.get_current_user()
        if not current_user:
            return None

        session = await self._call(
            lambda resolve, reject: current_user.get_session(_node_callback(resolve, reject))
        )

        if is_token_valid(session.access_token.get_expiration()):
            return session.access_token.jwt_token

        logger.debug("Access token for %s is about to expire, refreshing", current_user.username)
        updated_session = await self._call(lambda resolve, reject: current_user.refresh_session(
            session.refresh_token, _node_callback(resolve, reject)
        ))
        return updated_session.access_token.jwt_token
