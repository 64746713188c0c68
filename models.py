# Database models
import re
from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

_LIVE_ROWS = db.text('deleted_at IS NULL')
_NON_SLUG_CHARS = re.compile(r'[^a-z0-9]+')


def now_utc():
    return datetime.now(timezone.utc).replace(tzinfo=None)


def slugify(title):
    """Lowercase the title and collapse every non-alphanumeric run into one hyphen.

    "item1 part 2" -> "item1-part-2". Returns "" when nothing survives.
    """
    return _NON_SLUG_CHARS.sub('-', (title or '').strip().lower()).strip('-')


def _live_unique_index(name, column):
    # Partial index where the dialect supports it, plain unique index elsewhere
    return db.Index(name, column, unique=True,
                    sqlite_where=_LIVE_ROWS, postgresql_where=_LIVE_ROWS)


item_tags = db.Table(
    'item_tags',
    db.Column('item_id', db.Integer, db.ForeignKey('items.id', ondelete='CASCADE'), primary_key=True),
    db.Column('tag_id', db.Integer, db.ForeignKey('tags.id', ondelete='CASCADE'), primary_key=True),
    # Index into the tag list as the author supplied it
    db.Column('position', db.Integer, nullable=False, default=0),
)

favorites = db.Table(
    'favorites',
    db.Column('player_id', db.Integer, db.ForeignKey('players.id', ondelete='CASCADE'), primary_key=True),
    db.Column('item_id', db.Integer, db.ForeignKey('items.id', ondelete='CASCADE'), primary_key=True),
)


class Player(db.Model):
    __tablename__ = 'players'
    __table_args__ = (
        _live_unique_index('uq_players_username', 'username'),
        _live_unique_index('uq_players_email', 'email'),
    )

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(50), nullable=False)
    email = db.Column(db.String(100), nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    bio = db.Column(db.Text)
    image = db.Column(db.String(255))
    created_at = db.Column(db.DateTime, default=now_utc, nullable=False)
    updated_at = db.Column(db.DateTime, default=now_utc, onupdate=now_utc, nullable=False)
    deleted_at = db.Column(db.DateTime)

    items = db.relationship('Item', back_populates='author', lazy='dynamic')
    comments = db.relationship('Comment', back_populates='author', lazy='dynamic')
    # Incoming edges: rows where this player is the one being followed
    followers = db.relationship('Follow', foreign_keys='Follow.following_id',
                                back_populates='following')
    followings = db.relationship('Follow', foreign_keys='Follow.follower_id',
                                 back_populates='follower')

    def followed_by(self, player_id):
        """True if ``player_id`` follows this player.

        Reads the ``followers`` collection, so load it eagerly when this is
        called once per profile.
        """
        if player_id is None:
            return False
        return any(f.follower_id == player_id for f in self.followers)

    def __repr__(self):
        return f'<Player {self.username}>'


class Follow(db.Model):
    __tablename__ = 'follows'

    follower_id = db.Column(db.Integer, db.ForeignKey('players.id', ondelete='CASCADE'), primary_key=True)
    following_id = db.Column(db.Integer, db.ForeignKey('players.id', ondelete='CASCADE'), primary_key=True)
    created_at = db.Column(db.DateTime, default=now_utc, nullable=False)

    follower = db.relationship('Player', foreign_keys=[follower_id], back_populates='followings')
    following = db.relationship('Player', foreign_keys=[following_id], back_populates='followers')


class Item(db.Model):
    __tablename__ = 'items'
    __table_args__ = (
        _live_unique_index('uq_items_slug', 'slug'),
    )

    id = db.Column(db.Integer, primary_key=True)
    slug = db.Column(db.String(255), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False, default='')
    body = db.Column(db.Text, nullable=False, default='')
    author_id = db.Column(db.Integer, db.ForeignKey('players.id'), nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=now_utc, nullable=False, index=True)
    updated_at = db.Column(db.DateTime, default=now_utc, onupdate=now_utc, nullable=False)
    deleted_at = db.Column(db.DateTime)

    tags = db.relationship('Tag', secondary=item_tags, order_by=item_tags.c.position,
                           backref=db.backref('items', lazy='dynamic'))
    favorited_by = db.relationship('Player', secondary=favorites, order_by='Player.id',
                                   backref=db.backref('favorites', lazy='dynamic'))
    author = db.relationship('Player', back_populates='items')
    comments = db.relationship('Comment', back_populates='item', lazy='dynamic')

    @property
    def tag_list(self):
        return [t.tag for t in self.tags]

    @property
    def favorites_count(self):
        return len(self.favorited_by)

    def favorited(self, player_id):
        if player_id is None:
            return False
        return any(p.id == player_id for p in self.favorited_by)

    def __repr__(self):
        return f'<Item {self.slug}>'


class Comment(db.Model):
    __tablename__ = 'comments'

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(db.Integer, db.ForeignKey('items.id'), nullable=False, index=True)
    player_id = db.Column(db.Integer, db.ForeignKey('players.id'), nullable=False)
    body = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=now_utc, nullable=False)
    updated_at = db.Column(db.DateTime, default=now_utc, onupdate=now_utc, nullable=False)
    deleted_at = db.Column(db.DateTime)

    item = db.relationship('Item', back_populates='comments')
    author = db.relationship('Player', back_populates='comments')


class Tag(db.Model):
    __tablename__ = 'tags'

    id = db.Column(db.Integer, primary_key=True)
    tag = db.Column(db.String(100), unique=True, nullable=False)
    created_at = db.Column(db.DateTime, default=now_utc, nullable=False)
    updated_at = db.Column(db.DateTime, default=now_utc, onupdate=now_utc, nullable=False)
    deleted_at = db.Column(db.DateTime)
