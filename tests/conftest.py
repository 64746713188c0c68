import pytest

from app import create_app
from auth import generate_token, hash_password
from item_store import ItemStore
from models import Comment, Item, Player, db
from player_store import PlayerStore


@pytest.fixture
def app(tmp_path):
    app = create_app('testing', {
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///' + str(tmp_path / 'test.db'),
    })
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def players(app):
    return PlayerStore(db.session)


@pytest.fixture
def items(app):
    return ItemStore(db.session)


@pytest.fixture
def seed(players, items):
    """player1 follows player2; item1 by player1, item2 by player2 favorited by player1."""
    p1 = players.create(Player(
        username='player1',
        email='player1@realworld.io',
        password_hash=hash_password('secret'),
        bio='player1 bio',
        image='http://realworld.io/player1.jpg',
    ))
    p2 = players.create(Player(
        username='player2',
        email='player2@realworld.io',
        password_hash=hash_password('secret'),
        bio='player2 bio',
        image='http://realworld.io/player2.jpg',
    ))
    players.add_follower(p2.id, p1.id)

    item1 = items.create(Item(
        title='item1 slug',
        description='item1 description',
        body='item1 body',
        author_id=p1.id,
    ), ['tag1', 'tag2'])
    items.add_comment(item1, Comment(body='item1 comment1', player_id=p1.id))

    item2 = items.create(Item(
        title='item2 slug',
        description='item2 description',
        body='item2 body',
        author_id=p2.id,
    ), ['tag1'])
    items.add_comment(item2, Comment(body='item2 comment1 by player1', player_id=p1.id))
    items.add_favorite(item2, p1.id)

    return {
        'player1': p1.id,
        'player2': p2.id,
        'item1': item1.id,
        'item2': item2.id,
    }


@pytest.fixture
def auth_header(app):
    def make(player_id):
        return {'Authorization': 'Token ' + generate_token(player_id)}
    return make
