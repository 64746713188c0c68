"""Player repository: account CRUD and the follow graph."""
import logging

from sqlalchemy.orm import selectinload

from database import transaction
from errors import NotFound, ValidationError
from models import Follow, Player

logger = logging.getLogger(__name__)


class PlayerStore:
    # Fields a client may overwrite on update
    UPDATABLE = ('username', 'email', 'password_hash', 'bio', 'image')

    def __init__(self, session):
        self.session = session

    def _live(self):
        return self.session.query(Player).filter(Player.deleted_at.is_(None))

    def get_by_id(self, player_id):
        return self._live().filter(Player.id == player_id).first()

    def get_by_email(self, email):
        return self._live().filter(Player.email == email).first()

    def get_by_username(self, username):
        """Look a player up by username with their incoming follow edges loaded.

        ``Player.followed_by`` can then be answered for any viewer without
        another query.
        """
        return (self._live()
                .options(selectinload(Player.followers))
                .filter(Player.username == username)
                .first())

    def _check_unique(self, player):
        taken = self._live().filter(Player.username == player.username)
        if player.id is not None:
            taken = taken.filter(Player.id != player.id)
        if taken.first() is not None:
            raise ValidationError("username has already been taken")

        taken = self._live().filter(Player.email == player.email)
        if player.id is not None:
            taken = taken.filter(Player.id != player.id)
        if taken.first() is not None:
            raise ValidationError("email has already been taken")

    def create(self, player):
        for field in ('username', 'email', 'password_hash'):
            if not getattr(player, field):
                raise ValidationError(f"{field} can't be blank")

        with transaction(self.session, 'create player'):
            with self.session.no_autoflush:
                self._check_unique(player)
            self.session.add(player)
        logger.info("Created player %s (id=%s)", player.username, player.id)
        return player

    def update(self, player, fields):
        """Overlay the supplied ``fields`` onto ``player``; absent or None keys keep their value."""
        with transaction(self.session, 'update player'):
            for name in self.UPDATABLE:
                value = fields.get(name)
                if value is not None:
                    setattr(player, name, value)
            with self.session.no_autoflush:
                self._check_unique(player)
        logger.info("Updated player %s", player.id)
        return player

    def add_follower(self, player_id, follower_id):
        """Make ``follower_id`` follow ``player_id``. Following twice is a no-op."""
        if player_id == follower_id:
            raise ValidationError("players cannot follow themselves")

        with transaction(self.session, 'follow'):
            for pid in (player_id, follower_id):
                if self.get_by_id(pid) is None:
                    raise NotFound(f"player {pid} not found")
            edge = self.session.get(Follow, (follower_id, player_id))
            if edge is None:
                self.session.add(Follow(follower_id=follower_id, following_id=player_id))
                logger.info("Player %s now follows %s", follower_id, player_id)

    def remove_follower(self, player_id, follower_id):
        with transaction(self.session, 'unfollow'):
            removed = (self.session.query(Follow)
                       .filter(Follow.follower_id == follower_id,
                               Follow.following_id == player_id)
                       .delete(synchronize_session='fetch'))
        if removed:
            logger.info("Player %s unfollowed %s", follower_id, player_id)

    def is_follower(self, player_id, follower_id):
        if follower_id is None:
            return False
        edge = (self.session.query(Follow.follower_id)
                .filter(Follow.following_id == player_id,
                        Follow.follower_id == follower_id)
                .first())
        return edge is not None

    def list_followers(self, player_id):
        """Players following ``player_id``, oldest edge first, each with its followers loaded."""
        return (self._live()
                .options(selectinload(Player.followers))
                .join(Follow, Follow.follower_id == Player.id)
                .filter(Follow.following_id == player_id)
                .order_by(Follow.created_at, Player.id)
                .all())

    def list_following(self, player_id):
        """Players ``player_id`` follows, oldest edge first."""
        return (self._live()
                .options(selectinload(Player.followers))
                .join(Follow, Follow.following_id == Player.id)
                .filter(Follow.follower_id == player_id)
                .order_by(Follow.created_at, Player.id)
                .all())
