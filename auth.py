import secrets
from urllib.parse import urlencode

import requests
from flask import Blueprint, current_app, jsonify, redirect, request, session
from flask_login import LoginManager, current_user, login_user, logout_user

from errors import PermanentError, TransientError
from models import db, User
from workflow import attach_subject, create_user, get_user_by_email

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')

login_manager = LoginManager()


@login_manager.user_loader
def load_user(user_id):
    # This function is used by Flask-Login to get the current user from the DB
    return db.session.get(User, int(user_id))


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({'status': 'error', 'kind': 'unauthorized', 'message': 'Sign in required'}), 401


def _callback_url():
    return request.url_root.rstrip('/') + '/api/auth/callback/google'


def _fetch_profile(code):
    # Trade the authorization code for a token, then read the signed-in profile
    config = current_app.config
    try:
        r = requests.post(config['GOOGLE_TOKEN_URL'], data={
            'code': code,
            'client_id': config['GOOGLE_CLIENT_ID'],
            'client_secret': config['GOOGLE_CLIENT_SECRET'],
            'redirect_uri': _callback_url(),
            'grant_type': 'authorization_code',
        }, timeout=config['OAUTH_TIMEOUT'])
        r.raise_for_status()
        access_token = r.json()['access_token']

        r = requests.get(config['GOOGLE_USERINFO_URL'],
                         headers={'Authorization': f'Bearer {access_token}'},
                         timeout=config['OAUTH_TIMEOUT'])
        r.raise_for_status()
        return r.json()
    except (requests.RequestException, KeyError, ValueError) as e:
        current_app.logger.error(f'Identity provider error: {e}')
        raise TransientError('Identity provider unavailable') from e


# Route 1: Sign in (redirect to the provider)
@auth_bp.route('/signin', methods=['GET', 'POST'])
def signin():
    state = secrets.token_urlsafe(16)
    session['oauth_state'] = state
    query = urlencode({
        'client_id': current_app.config['GOOGLE_CLIENT_ID'],
        'redirect_uri': _callback_url(),
        'response_type': 'code',
        'scope': 'openid email profile',
        'state': state,
    })
    return redirect(f"{current_app.config['GOOGLE_AUTHORIZE_URL']}?{query}")


# Route 2: OAuth callback
@auth_bp.route('/callback/google', methods=['GET', 'POST'])
def callback():
    params = request.values
    expected_state = session.pop('oauth_state', None)
    if not expected_state or params.get('state') != expected_state:
        current_app.logger.warning('Failed sign-in: OAuth state mismatch')
        raise PermanentError('Invalid OAuth state')
    if 'code' not in params:
        current_app.logger.warning(f"Failed sign-in: {params.get('error', 'no code')}")
        raise PermanentError('Missing authorization code')

    profile = _fetch_profile(params['code'])
    subject = profile.get('sub')
    email = profile.get('email')
    if not subject or not email:
        raise PermanentError('Identity provider returned an incomplete profile')

    user = get_user_by_email(email)
    if user is None:
        user = create_user(email, profile.get('name') or email, subject=subject)
    elif user.subject is None:
        attach_subject(user, subject)

    login_user(user)
    # The token subject identifies the user for the rest of the session
    session['user_subject'] = subject
    current_app.logger.info(f'Successful sign-in for user: {email}')
    return redirect('/')


# Route 3: Sign out
@auth_bp.route('/signout', methods=['GET', 'POST'])
def signout():
    if current_user.is_authenticated:
        current_app.logger.info(f'User {current_user.email} signed out.')
    logout_user()
    session.pop('user_subject', None)
    return jsonify({'status': 'success'})


# Route 4: Current session
@auth_bp.route('/session')
def current_session():
    if not current_user.is_authenticated:
        return jsonify({})
    user = current_user.to_dict()
    user['subject'] = session.get('user_subject', user['subject'])
    return jsonify({'user': user})
