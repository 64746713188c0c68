"""Item repository: items, their tags, comments and favorites, and the listings over them."""
import logging

from sqlalchemy import select
from sqlalchemy.orm import joinedload, selectinload

from database import transaction
from errors import NotFound, ValidationError
from listing import ByAuthor, ByFavoriter, ByTag, paginate
from models import Comment, Follow, Item, Player, Tag, favorites, item_tags, now_utc, slugify

logger = logging.getLogger(__name__)

# Everything a response needs about an item, loaded up front
ITEM_ASSOCIATIONS = (
    joinedload(Item.author).selectinload(Player.followers),
    selectinload(Item.tags),
    selectinload(Item.favorited_by),
)

COMMENT_AUTHOR = joinedload(Comment.author).selectinload(Player.followers)


class ItemStore:
    EDITABLE = ('title', 'description', 'body')

    def __init__(self, session):
        self.session = session

    def _live(self):
        return self.session.query(Item).filter(Item.deleted_at.is_(None))

    def _reload(self, item_id):
        return (self._live()
                .options(*ITEM_ASSOCIATIONS)
                .populate_existing()
                .filter(Item.id == item_id)
                .one())

    def _player_named(self, username):
        player = (self.session.query(Player)
                  .filter(Player.username == username, Player.deleted_at.is_(None))
                  .first())
        if player is None:
            raise NotFound(f"player {username!r} not found")
        return player

    def get_by_slug(self, slug):
        return self._live().options(*ITEM_ASSOCIATIONS).filter(Item.slug == slug).first()

    def get_authored_by_slug(self, author_id, slug):
        """Ownership check only: associations are left unloaded."""
        return self._live().filter(Item.slug == slug, Item.author_id == author_id).first()

    # -- writes --------------------------------------------------------------

    def _slug_for(self, item):
        slug = slugify(item.title)
        if not slug:
            raise ValidationError("title must contain at least one letter or digit")
        taken = self._live().filter(Item.slug == slug)
        if item.id is not None:
            taken = taken.filter(Item.id != item.id)
        with self.session.no_autoflush:
            if taken.first() is not None:
                raise ValidationError(f"slug {slug!r} has already been taken")
        return slug

    def _resolve_tags(self, labels):
        """Map labels to Tag rows, creating only the ones that do not exist yet."""
        tags, seen = [], set()
        for label in labels:
            label = (label or '').strip()
            if not label or label in seen:
                continue
            seen.add(label)
            tag = self.session.query(Tag).filter(Tag.tag == label).first()
            if tag is None:
                tag = Tag(tag=label)
                self.session.add(tag)
                self.session.flush()
                logger.debug("Created tag %r", label)
            tags.append(tag)
        return tags

    def _replace_tags(self, item_id, tags):
        """Make ``tags`` the item's tag list, in the given order."""
        wanted = [{'item_id': item_id, 'tag_id': t.id, 'position': n} for n, t in enumerate(tags)]
        current = [dict(row._mapping) for row in self.session.execute(
            select(item_tags.c.item_id, item_tags.c.tag_id, item_tags.c.position)
            .where(item_tags.c.item_id == item_id)
            .order_by(item_tags.c.position))]
        if current == wanted:
            return

        self.session.execute(item_tags.delete().where(item_tags.c.item_id == item_id))
        if wanted:
            self.session.execute(item_tags.insert(), wanted)

    def create(self, item, tag_labels=()):
        if not item.title:
            raise ValidationError("title can't be blank")
        if item.author_id is None:
            raise ValidationError("item needs an author")

        with transaction(self.session, 'create item'):
            item.slug = self._slug_for(item)
            self.session.add(item)
            self.session.flush()
            self._replace_tags(item.id, self._resolve_tags(tag_labels or ()))
            item = self._reload(item.id)
        logger.info("Player %s created item %s", item.author_id, item.slug)
        return item

    def update(self, item, fields, tag_labels=None):
        """Overlay ``fields`` onto ``item`` and, when given, replace its tags.

        Keys that are absent or None keep their current value. ``tag_labels``
        of None keeps the current tag set; any list replaces it exactly.
        """
        with transaction(self.session, 'update item'):
            old_title = item.title
            for name in self.EDITABLE:
                value = fields.get(name)
                if value is not None:
                    setattr(item, name, value)
            if not item.title:
                raise ValidationError("title can't be blank")
            if item.title != old_title:
                item.slug = self._slug_for(item)
            self.session.flush()
            if tag_labels is not None:
                self._replace_tags(item.id, self._resolve_tags(tag_labels))
            item = self._reload(item.id)
        logger.info("Updated item %s", item.slug)
        return item

    def delete(self, item):
        """Soft-delete the item and its comments; drop its tag and favorite edges."""
        with transaction(self.session, 'delete item'):
            now = now_utc()
            (self.session.query(Comment)
             .filter(Comment.item_id == item.id, Comment.deleted_at.is_(None))
             .update({Comment.deleted_at: now}, synchronize_session=False))
            self.session.execute(item_tags.delete().where(item_tags.c.item_id == item.id))
            self.session.execute(favorites.delete().where(favorites.c.item_id == item.id))
            item.deleted_at = now
        logger.info("Deleted item %s", item.slug)

    # -- listings ------------------------------------------------------------

    def list(self, offset, limit, criterion=None):
        """One page of live items matching ``criterion``, newest first, with the total count."""
        query = self._live()
        if criterion is None:
            pass
        elif isinstance(criterion, ByTag):
            tag = self.session.query(Tag).filter(Tag.tag == criterion.label).first()
            if tag is None:
                raise NotFound(f"tag {criterion.label!r} not found")
            query = (query.join(item_tags, item_tags.c.item_id == Item.id)
                     .filter(item_tags.c.tag_id == tag.id))
        elif isinstance(criterion, ByAuthor):
            author = self._player_named(criterion.username)
            query = query.filter(Item.author_id == author.id)
        elif isinstance(criterion, ByFavoriter):
            player = self._player_named(criterion.username)
            query = (query.join(favorites, favorites.c.item_id == Item.id)
                     .filter(favorites.c.player_id == player.id))
        else:
            raise ValidationError(f"unsupported listing filter {criterion!r}")
        return paginate(query, offset, limit, ITEM_ASSOCIATIONS)

    def list_by_tag(self, tag, offset, limit):
        return self.list(offset, limit, ByTag(tag))

    def list_by_author(self, username, offset, limit):
        return self.list(offset, limit, ByAuthor(username))

    def list_by_who_favorited(self, username, offset, limit):
        return self.list(offset, limit, ByFavoriter(username))

    def list_feed(self, player_id, offset, limit):
        """Items by the authors ``player_id`` follows; the count covers that whole set."""
        exists = (self.session.query(Player.id)
                  .filter(Player.id == player_id, Player.deleted_at.is_(None))
                  .first())
        if exists is None:
            raise NotFound(f"player {player_id} not found")
        followed = select(Follow.following_id).where(Follow.follower_id == player_id)
        query = self._live().filter(Item.author_id.in_(followed))
        return paginate(query, offset, limit, ITEM_ASSOCIATIONS)

    # -- comments ------------------------------------------------------------

    def _comments(self):
        return self.session.query(Comment).filter(Comment.deleted_at.is_(None))

    def add_comment(self, item, comment):
        if not comment.body:
            raise ValidationError("body can't be blank")
        if comment.player_id is None:
            raise ValidationError("comment needs an author")

        with transaction(self.session, 'add comment'):
            comment.item_id = item.id
            self.session.add(comment)
            self.session.flush()
            comment = (self._comments()
                       .options(COMMENT_AUTHOR)
                       .populate_existing()
                       .filter(Comment.id == comment.id)
                       .one())
        logger.info("Player %s commented on item %s", comment.player_id, item.id)
        return comment

    def get_comments_by_slug(self, slug):
        item = self._live().filter(Item.slug == slug).first()
        if item is None:
            return []
        return (self._comments()
                .options(COMMENT_AUTHOR)
                .filter(Comment.item_id == item.id)
                .order_by(Comment.created_at, Comment.id)
                .all())

    def get_comment_by_id(self, comment_id):
        return self._comments().filter(Comment.id == comment_id).first()

    def delete_comment(self, comment):
        comment_id = comment.id
        with transaction(self.session, 'delete comment'):
            self.session.delete(comment)
        logger.info("Deleted comment %s", comment_id)

    # -- favorites -----------------------------------------------------------

    def add_favorite(self, item, player_id):
        """Bookmark ``item`` for ``player_id``. Favoriting twice is a no-op."""
        with transaction(self.session, 'favorite'):
            exists = (self.session.query(Player.id)
                      .filter(Player.id == player_id, Player.deleted_at.is_(None))
                      .first())
            if exists is None:
                raise NotFound(f"player {player_id} not found")
            edge = self.session.execute(
                select(favorites.c.player_id).where(
                    favorites.c.player_id == player_id,
                    favorites.c.item_id == item.id)).first()
            if edge is None:
                self.session.execute(favorites.insert().values(player_id=player_id, item_id=item.id))
                logger.info("Player %s favorited item %s", player_id, item.id)

    def remove_favorite(self, item, player_id):
        with transaction(self.session, 'unfavorite'):
            self.session.execute(favorites.delete().where(
                favorites.c.player_id == player_id,
                favorites.c.item_id == item.id))

    def list_tags(self):
        return self.session.query(Tag).filter(Tag.deleted_at.is_(None)).order_by(Tag.id).all()
