import pytest

from errors import NotFound, ValidationError
from listing import ByAuthor, ByFavoriter, ByTag, check_page, criterion_from_args
from models import Item


def slugs(page):
    return [item.slug for item in page.items]


def test_criterion_picks_one_filter():
    assert criterion_from_args() is None
    assert criterion_from_args(tag='t', author='a', favorited='f') == ByTag('t')
    assert criterion_from_args(author='a', favorited='f') == ByAuthor('a')
    assert criterion_from_args(favorited='f') == ByFavoriter('f')
    assert criterion_from_args(tag='', author='') is None


@pytest.mark.parametrize('offset, limit', [(-1, 20), (0, 0), (0, -5), ('0', 20), (0, None), (True, 20)])
def test_check_page_rejects_bad_windows(offset, limit):
    with pytest.raises(ValidationError):
        check_page(offset, limit)


def test_list_all_newest_first(seed, items):
    page = items.list(0, 20)

    assert slugs(page) == ['item2-slug', 'item1-slug']
    assert page.count == 2


def test_count_ignores_the_window(seed, items):
    for n in range(3):
        items.create(Item(title=f'extra {n}', author_id=seed['player1']))

    page = items.list(1, 2)

    assert slugs(page) == ['extra-1', 'extra-0']
    assert page.count == 5
    assert items.list(10, 5).items == []
    assert items.list(10, 5).count == 5


def test_list_by_tag(seed, items):
    page = items.list_by_tag('tag2', 0, 20)
    assert slugs(page) == ['item1-slug']
    assert page.count == 1

    page = items.list_by_tag('tag1', 0, 1)
    assert slugs(page) == ['item2-slug']
    assert page.count == 2


def test_list_by_unknown_tag(seed, items):
    with pytest.raises(NotFound):
        items.list_by_tag('nope', 0, 20)


def test_list_by_author(seed, items):
    page = items.list_by_author('player1', 0, 20)

    assert slugs(page) == ['item1-slug']
    assert page.count == 1
    assert page.items[0].author.username == 'player1'


def test_list_by_unknown_author(seed, items):
    with pytest.raises(NotFound):
        items.list_by_author('nobody', 0, 20)


def test_list_by_who_favorited(seed, items):
    page = items.list_by_who_favorited('player1', 0, 20)
    assert slugs(page) == ['item2-slug']
    assert page.count == 1

    page = items.list_by_who_favorited('player2', 0, 20)
    assert page.items == []
    assert page.count == 0


def test_list_by_unknown_favoriter(seed, items):
    with pytest.raises(NotFound):
        items.list_by_who_favorited('nobody', 0, 20)


def test_list_with_criterion_object(seed, items):
    assert slugs(items.list(0, 20, ByFavoriter('player1'))) == ['item2-slug']
    with pytest.raises(ValidationError):
        items.list(0, 20, 'tag1')


def test_list_loads_associations(seed, items):
    item = items.list_by_tag('tag1', 0, 20).items[0]

    assert item.tag_list == ['tag1']
    assert item.favorited(seed['player1'])
    assert item.author.followed_by(seed['player1'])


def test_feed_only_has_followed_authors(seed, items):
    page = items.list_feed(seed['player1'], 0, 20)

    assert slugs(page) == ['item2-slug']
    assert page.count == 1


def test_feed_count_covers_followed_items(seed, items):
    for n in range(3):
        items.create(Item(title=f'by two {n}', author_id=seed['player2']))

    page = items.list_feed(seed['player1'], 0, 2)

    assert slugs(page) == ['by-two-2', 'by-two-1']
    assert page.count == 4


def test_feed_of_player_following_nobody(seed, items):
    page = items.list_feed(seed['player2'], 0, 20)

    assert page.items == []
    assert page.count == 0


def test_feed_of_unknown_player(seed, items):
    with pytest.raises(NotFound):
        items.list_feed(999, 0, 20)


def test_deleted_items_drop_out_of_listings(seed, items):
    items.delete(items.get_by_slug('item1-slug'))

    assert slugs(items.list(0, 20)) == ['item2-slug']
    assert items.list_by_author('player1', 0, 20).count == 0
    assert items.list_by_tag('tag2', 0, 20).count == 0
