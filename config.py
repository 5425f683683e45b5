import os

from dotenv import load_dotenv

# Pick up GOOGLE_CLIENT_ID, AUTH_SECRET, ... from a local .env file
load_dotenv()


class Config:
    # Signing secret for the session cookie (Change this for production)
    SECRET_KEY = os.environ.get('AUTH_SECRET', 'wastewise-dev-secret')
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL', 'sqlite:///wastewise.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # --- Identity provider (Google OAuth) ---
    GOOGLE_CLIENT_ID = os.environ.get('GOOGLE_CLIENT_ID', '')
    GOOGLE_CLIENT_SECRET = os.environ.get('GOOGLE_CLIENT_SECRET', '')
    GOOGLE_AUTHORIZE_URL = 'https://accounts.google.com/o/oauth2/v2/auth'
    GOOGLE_TOKEN_URL = 'https://oauth2.googleapis.com/token'
    GOOGLE_USERINFO_URL = 'https://openidconnect.googleapis.com/v1/userinfo'
    OAUTH_TIMEOUT = 10

    # 'wastewise.log' remembers the last events, empty string disables it
    LOG_FILE = os.environ.get('LOG_FILE', 'wastewise.log')

    # --- Points rules ---
    REPORT_POINTS = int(os.environ.get('REPORT_POINTS', 10))
    COLLECTION_POINTS = int(os.environ.get('COLLECTION_POINTS', 10))
    TRANSACTION_HISTORY_LIMIT = 10


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = 'testing-secret'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    GOOGLE_CLIENT_ID = 'test-client-id'
    GOOGLE_CLIENT_SECRET = 'test-client-secret'
    LOG_FILE = ''
