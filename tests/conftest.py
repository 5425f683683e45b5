import pytest

from app import create_app
from config import TestingConfig
from models import db, Reward, User


@pytest.fixture
def app(tmp_path):
    class Config(TestingConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'test.db'}"

    app = create_app(Config)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def user(app):
    user = User(email='ana@example.com', name='Ana', subject='google-sub-1')
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def collector(app):
    user = User(email='collector@example.com', name='Collector')
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def catalog(app):
    bag = Reward(name='Reusable Bag', cost=30, description='Cotton tote', collection_info='Partner store')
    pass_ = Reward(name='Day Pass', cost=100, description='City transport', collection_info='Notification')
    hidden = Reward(name='Retired', cost=5, collection_info='n/a', is_available=False)
    db.session.add_all([bag, pass_, hidden])
    db.session.commit()
    return {'bag': bag, 'pass': pass_, 'hidden': hidden}


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def logged_in_client(client, user):
    with client.session_transaction() as session:
        session['_user_id'] = str(user.id)
        session['_fresh'] = True
    return client
