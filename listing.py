"""Pagination, ordering and filter conventions shared by every item listing."""
from dataclasses import dataclass
from typing import List, NamedTuple, Optional, Union

from errors import ValidationError
from models import Item


@dataclass(frozen=True)
class ByTag:
    label: str


@dataclass(frozen=True)
class ByAuthor:
    username: str


@dataclass(frozen=True)
class ByFavoriter:
    username: str


# At most one filter applies to a listing; None means "all items"
Criterion = Optional[Union[ByTag, ByAuthor, ByFavoriter]]


class Page(NamedTuple):
    items: List[Item]
    count: int


def criterion_from_args(tag=None, author=None, favorited=None) -> Criterion:
    """Pick the single filter a listing request asks for (tag, then author, then favorited)."""
    if tag:
        return ByTag(tag)
    if author:
        return ByAuthor(author)
    if favorited:
        return ByFavoriter(favorited)
    return None


def _is_int(value):
    return isinstance(value, int) and not isinstance(value, bool)


def check_page(offset, limit):
    if not _is_int(offset) or offset < 0:
        raise ValidationError(f"offset must be a non-negative integer, got {offset!r}")
    if not _is_int(limit) or limit <= 0:
        raise ValidationError(f"limit must be a positive integer, got {limit!r}")


def newest_first(query):
    return query.order_by(Item.created_at.desc(), Item.id.desc())


def paginate(query, offset, limit, options=()) -> Page:
    """Count the whole filtered set, then fetch one newest-first window of it.

    The count ignores ``offset`` and ``limit``; loader ``options`` only
    apply to the page fetch.
    """
    check_page(offset, limit)
    count = query.order_by(None).count()
    items = newest_first(query.options(*options)).offset(offset).limit(limit).all()
    return Page(items, count)
