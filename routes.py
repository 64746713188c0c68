# Routes for handling requests
from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import jwt_required
from sqlalchemy.exc import SQLAlchemyError

from auth import check_password, current_player_id, generate_token, hash_password
from errors import AppError, AuthorizationError, NotFound, StorageError
from forms import (comment_form, item_create_form, item_update_form, login_form,
                   player_update_form, register_form)
from item_store import ItemStore
from listing import criterion_from_args
from models import Comment, Item, Player, db
from player_store import PlayerStore

# Create blueprints for different route categories
players_bp = Blueprint('players', __name__)
player_bp = Blueprint('player', __name__)
profiles_bp = Blueprint('profiles', __name__)
items_bp = Blueprint('items', __name__)
tags_bp = Blueprint('tags', __name__)


def player_store():
    return PlayerStore(db.session)


def item_store():
    return ItemStore(db.session)


def handle_app_error(error):
    if error.status_code >= 500:
        current_app.logger.error("Request failed: %s", error.message, exc_info=error.cause)
    return jsonify(error.to_dict()), error.status_code


def handle_storage_error(error):
    # Reads run outside a transaction, so their driver errors arrive here unwrapped
    return handle_app_error(StorageError("storage failure", cause=error))


def _timestamp(value):
    return value.isoformat(timespec='milliseconds') + 'Z'


def _page_args():
    """offset/limit from the query string; 0 and the configured limit when absent or unparsable."""
    offset = request.args.get('offset', type=int)
    limit = request.args.get('limit', type=int)
    if offset is None:
        offset = 0
    if limit is None:
        limit = current_app.config.get('DEFAULT_PAGE_LIMIT', 20)
    return offset, limit


# Response documents

def player_response(player):
    return {"player": {
        "username": player.username,
        "email": player.email,
        "bio": player.bio,
        "image": player.image,
        "token": generate_token(player.id),
    }}


def _profile(player, viewer_id):
    return {
        "username": player.username,
        "bio": player.bio,
        "image": player.image,
        "following": player.followed_by(viewer_id),
    }


def _item(item, viewer_id):
    return {
        "slug": item.slug,
        "title": item.title,
        "description": item.description,
        "body": item.body,
        "tagList": item.tag_list,
        "createdAt": _timestamp(item.created_at),
        "updatedAt": _timestamp(item.updated_at),
        "favorited": item.favorited(viewer_id),
        "favoritesCount": item.favorites_count,
        "author": _profile(item.author, viewer_id),
    }


def _comment(comment, viewer_id):
    return {
        "id": comment.id,
        "body": comment.body,
        "createdAt": _timestamp(comment.created_at),
        "updatedAt": _timestamp(comment.updated_at),
        "author": _profile(comment.author, viewer_id),
    }


def item_list_response(page, viewer_id):
    return {
        "items": [_item(item, viewer_id) for item in page.items],
        "itemsCount": page.count,
    }


# Authentication Endpoints
@players_bp.route('', methods=['POST'])
def sign_up():
    """Player registration endpoint"""
    form = register_form(request.get_json(silent=True))
    player = Player(
        username=form['username'],
        email=form['email'],
        password_hash=hash_password(form['password'])
    )
    player = player_store().create(player)
    return jsonify(player_response(player)), 201


@players_bp.route('/login', methods=['POST'])
def login():
    form = login_form(request.get_json(silent=True))
    player = player_store().get_by_email(form['email'])
    if player is None or not check_password(player.password_hash, form['password']):
        return jsonify({"errors": {"body": ["access forbidden"]}}), 403
    return jsonify(player_response(player)), 200


@player_bp.route('', methods=['GET'])
@jwt_required()
def current_player():
    player = player_store().get_by_id(current_player_id())
    if player is None:
        raise NotFound("player not found")
    return jsonify(player_response(player)), 200


@player_bp.route('', methods=['PUT'])
@jwt_required()
def update_player():
    store = player_store()
    player = store.get_by_id(current_player_id())
    if player is None:
        raise NotFound("player not found")
    fields = player_update_form(request.get_json(silent=True), player)
    if 'password' in fields:
        fields['password_hash'] = hash_password(fields.pop('password'))
    player = store.update(player, fields)
    return jsonify(player_response(player)), 200


# Profiles and the follow graph
def _profile_or_404(store, username):
    player = store.get_by_username(username)
    if player is None:
        raise NotFound(f"profile {username!r} not found")
    return player


@profiles_bp.route('/<username>', methods=['GET'])
@jwt_required()
def get_profile(username):
    player = _profile_or_404(player_store(), username)
    return jsonify({"profile": _profile(player, current_player_id())}), 200


@profiles_bp.route('/<username>/follow', methods=['POST'])
@jwt_required()
def follow(username):
    store = player_store()
    me = current_player_id()
    player = _profile_or_404(store, username)
    store.add_follower(player.id, me)
    player = _profile_or_404(store, username)
    return jsonify({"profile": _profile(player, me)}), 200


@profiles_bp.route('/<username>/follow', methods=['DELETE'])
@jwt_required()
def unfollow(username):
    store = player_store()
    me = current_player_id()
    player = _profile_or_404(store, username)
    store.remove_follower(player.id, me)
    player = _profile_or_404(store, username)
    return jsonify({"profile": _profile(player, me)}), 200


@profiles_bp.route('/<username>/followers', methods=['GET'])
@jwt_required()
def followers(username):
    store = player_store()
    me = current_player_id()
    player = _profile_or_404(store, username)
    profiles = store.list_followers(player.id)
    return jsonify({"profiles": [_profile(p, me) for p in profiles]}), 200


@profiles_bp.route('/<username>/following', methods=['GET'])
@jwt_required()
def following(username):
    store = player_store()
    me = current_player_id()
    player = _profile_or_404(store, username)
    profiles = store.list_following(player.id)
    return jsonify({"profiles": [_profile(p, me) for p in profiles]}), 200


# Items
def _item_or_404(store, slug):
    item = store.get_by_slug(slug)
    if item is None:
        raise NotFound(f"item {slug!r} not found")
    return item


@items_bp.route('', methods=['GET'])
@jwt_required(optional=True)
def list_items():
    offset, limit = _page_args()
    criterion = criterion_from_args(
        tag=request.args.get('tag'),
        author=request.args.get('author'),
        favorited=request.args.get('favorited'),
    )
    page = item_store().list(offset, limit, criterion)
    return jsonify(item_list_response(page, current_player_id())), 200


@items_bp.route('/feed', methods=['GET'])
@jwt_required()
def feed():
    offset, limit = _page_args()
    me = current_player_id()
    page = item_store().list_feed(me, offset, limit)
    return jsonify(item_list_response(page, me)), 200


@items_bp.route('', methods=['POST'])
@jwt_required()
def create_item():
    me = current_player_id()
    form = item_create_form(request.get_json(silent=True))
    item = Item(
        title=form['title'],
        description=form['description'],
        body=form['body'],
        author_id=me
    )
    item = item_store().create(item, form['tags'])
    return jsonify({"item": _item(item, me)}), 201


@items_bp.route('/<slug>', methods=['GET'])
@jwt_required(optional=True)
def get_item(slug):
    item = _item_or_404(item_store(), slug)
    return jsonify({"item": _item(item, current_player_id())}), 200


@items_bp.route('/<slug>', methods=['PUT'])
@jwt_required()
def update_item(slug):
    store = item_store()
    me = current_player_id()
    item = store.get_authored_by_slug(me, slug)
    if item is None:
        raise NotFound(f"item {slug!r} not found")
    fields, tags = item_update_form(request.get_json(silent=True), item)
    item = store.update(item, fields, tags)
    return jsonify({"item": _item(item, me)}), 200


@items_bp.route('/<slug>', methods=['DELETE'])
@jwt_required()
def delete_item(slug):
    store = item_store()
    item = store.get_authored_by_slug(current_player_id(), slug)
    if item is None:
        raise NotFound(f"item {slug!r} not found")
    store.delete(item)
    return jsonify({"result": "ok"}), 200


@items_bp.route('/<slug>/comments', methods=['POST'])
@jwt_required()
def add_comment(slug):
    store = item_store()
    me = current_player_id()
    item = _item_or_404(store, slug)
    form = comment_form(request.get_json(silent=True))
    comment = store.add_comment(item, Comment(body=form['body'], player_id=me))
    return jsonify({"comment": _comment(comment, me)}), 201


@items_bp.route('/<slug>/comments', methods=['GET'])
@jwt_required(optional=True)
def get_comments(slug):
    me = current_player_id()
    comments = item_store().get_comments_by_slug(slug)
    return jsonify({"comments": [_comment(c, me) for c in comments]}), 200


@items_bp.route('/<slug>/comments/<int:comment_id>', methods=['DELETE'])
@jwt_required()
def delete_comment(slug, comment_id):
    store = item_store()
    item = _item_or_404(store, slug)
    comment = store.get_comment_by_id(comment_id)
    if comment is None or comment.item_id != item.id:
        raise NotFound(f"comment {comment_id} not found")
    if comment.player_id != current_player_id():
        raise AuthorizationError()
    store.delete_comment(comment)
    return jsonify({"result": "ok"}), 200


@items_bp.route('/<slug>/favorite', methods=['POST'])
@jwt_required()
def favorite(slug):
    store = item_store()
    me = current_player_id()
    item = _item_or_404(store, slug)
    store.add_favorite(item, me)
    item = _item_or_404(store, slug)
    return jsonify({"item": _item(item, me)}), 200


@items_bp.route('/<slug>/favorite', methods=['DELETE'])
@jwt_required()
def unfavorite(slug):
    store = item_store()
    me = current_player_id()
    item = _item_or_404(store, slug)
    store.remove_favorite(item, me)
    item = _item_or_404(store, slug)
    return jsonify({"item": _item(item, me)}), 200


@tags_bp.route('', methods=['GET'])
def list_tags():
    return jsonify({"tags": [t.tag for t in item_store().list_tags()]}), 200


def register_error_handlers(app):
    app.register_error_handler(AppError, handle_app_error)
    app.register_error_handler(SQLAlchemyError, handle_storage_error)
