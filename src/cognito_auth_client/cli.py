#!/usr/bin/env python3
"""
Cognito CLI Authentication Tool
Signs in to a Cognito User Pool, keeps the session tokens in a local file and
prints a fresh access token on demand.
"""

import asyncio
import logging
import sys

import click
from botocore.exceptions import BotoCoreError, ClientError

from .client import AWSAuthClient
from .config import load_config, missing_fields, save_config
from .errors import CognitoAuthError, describe_error
from .session import NEW_PASSWORD_REQUIRED
from .storage import FileStorage

FAILURES = (ClientError, BotoCoreError, CognitoAuthError)


def make_client(config):
    """Build an auth client from a loaded configuration"""
    missing = missing_fields(config)
    if missing:
        click.echo(f"❌ Missing configuration: {', '.join(missing)}")
        click.echo("Run 'cognito-auth configure' first or set environment variables:")
        click.echo("  COGNITO_USER_POOL_ID")
        click.echo("  COGNITO_CLIENT_ID")
        sys.exit(1)

    try:
        return AWSAuthClient(
            config['user_pool_id'],
            config['client_id'],
            storage=FileStorage(config.get('token_file')),
            region=config.get('region'),
        )
    except ValueError as e:
        click.echo(f"❌ Invalid configuration: {e}", err=True)
        click.echo("Run 'cognito-auth configure' to fix it.", err=True)
        sys.exit(1)


def run(coro):
    """Run a client coroutine, exiting with an error message on failure"""
    try:
        return asyncio.run(coro)
    except FAILURES as e:
        click.echo(f"❌ Error: {describe_error(e)}", err=True)
        sys.exit(1)


def show_delivery(details):
    destination = details.get('Destination', 'your registered address')
    medium = details.get('DeliveryMedium', 'EMAIL').lower()
    click.echo(f"📨 Code sent by {medium} to {destination}")


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Show debug logging')
def cli(verbose):
    """Cognito CLI Authentication Tool

    Sign in to a Cognito User Pool and manage the cached session.
    """
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format='%(asctime)s %(name)s %(levelname)s %(message)s')


@cli.command()
@click.option('--user-pool-id', prompt=True, help='Cognito User Pool ID')
@click.option('--client-id', prompt=True, help='Cognito User Pool Client ID')
@click.option('--region', help='AWS Region (optional, will be inferred from User Pool ID)')
@click.option('--token-file', help='Where to keep session tokens')
def configure(user_pool_id, client_id, region, token_file):
    """Configure Cognito authentication settings"""
    config = {
        'user_pool_id': user_pool_id,
        'client_id': client_id,
        'region': region,
        'token_file': token_file,
    }
    try:
        config_file = save_config(config)
    except OSError as e:
        click.echo(f"Error saving configuration: {e}", err=True)
        sys.exit(1)
    click.echo(f"✅ Configuration saved to {config_file}")


@cli.command()
def status():
    """Show current configuration status"""
    config = load_config()

    click.echo("📋 Current Configuration:")
    for key, value in config.items():
        if value:
            if key in ['user_pool_id', 'client_id']:
                # Show partial values for security
                masked_value = value[:8] + '...' + value[-4:] if len(value) > 12 else value
                click.echo(f"  {key}: {masked_value}")
            else:
                click.echo(f"  {key}: {value}")
        else:
            click.echo(f"  {key}: Not set")


@cli.command()
@click.option('--username', '-u', help='Username or email (will prompt if not provided)')
@click.option('--password', '-p', help='Password (will prompt securely if not provided)')
def login(username, password):
    """Authenticate with the Cognito User Pool"""
    if not username:
        username = click.prompt('Username')
    if not password:
        password = click.prompt('Password', hide_input=True)

    client = make_client(load_config())

    async def authenticate():
        result = await client.authenticate_user(username, password)
        if result is NEW_PASSWORD_REQUIRED:
            click.echo("New password required. Please set a new password.")
            new_password = click.prompt('New password', hide_input=True, confirmation_prompt=True)
            result = await client.complete_new_password(username, new_password)
        return result

    click.echo("🔐 Authenticating with Cognito User Pool...")
    session = run(authenticate())
    if session is NEW_PASSWORD_REQUIRED:
        click.echo("❌ Error: Cognito asked for another new password", err=True)
        sys.exit(1)
    click.echo("✅ Successfully authenticated with User Pool")


@cli.command()
def token():
    """Print a valid access token, refreshing it if needed"""
    client = make_client(load_config())
    access_token = run(client.get_current_session_token())
    if access_token is None:
        click.echo("❌ Not signed in. Run 'cognito-auth login' first.", err=True)
        sys.exit(1)
    click.echo(access_token)


@cli.command()
def logout():
    """Sign out and remove cached tokens"""
    client = make_client(load_config())
    run(client.sign_out())
    click.echo("👋 Signed out")


@cli.command('verify-email')
@click.argument('username')
@click.argument('code')
def verify_email(username, code):
    """Verify the signed-in user's email with CODE"""
    client = make_client(load_config())
    run(client.verify_user_email(username, code))
    click.echo("✅ Email verified")


@cli.command('resend-code')
@click.argument('username')
def resend_code(username):
    """Resend the sign-up confirmation code"""
    client = make_client(load_config())
    show_delivery(run(client.resend_verification_code(username)))


@cli.command('confirm-signup')
@click.argument('username')
@click.argument('code')
def confirm_signup(username, code):
    """Confirm a new registration with CODE"""
    client = make_client(load_config())
    run(client.confirm_registration(username, code))
    click.echo("✅ Registration confirmed")


@cli.command('forgot-password')
@click.argument('username')
def forgot_password(username):
    """Send a password reset code"""
    client = make_client(load_config())
    show_delivery(run(client.forgot_password(username)))


@cli.command('reset-password')
@click.argument('username')
@click.option('--code', prompt='Verification code', help='Code received by email')
@click.option('--password', prompt='New password', hide_input=True, confirmation_prompt=True,
              help='New password')
def reset_password(username, code, password):
    """Set a new password using a reset code"""
    client = make_client(load_config())
    run(client.forgot_password_submit(username, code, password))
    click.echo("✅ Password updated")


if __name__ == '__main__':
    cli()
