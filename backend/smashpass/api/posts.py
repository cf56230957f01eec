from flask import Blueprint, jsonify, request, current_app
from smashpass import db
from smashpass.models import Post
from smashpass.services.posts import cast_vote, get_page


posts = Blueprint('posts', __name__)


@posts.route('', methods=['GET'])
def list_posts():
    cfg = current_app.config
    try:
        page = int(request.args.get('page', 1))
        page_size = int(request.args.get('page_size', cfg.get('PAGE_SIZE', 10)))
    except (TypeError, ValueError):
        return jsonify({'error': 'page and page_size must be integers'}), 400
    if page < 1:
        return jsonify({'error': 'page must be >= 1'}), 400
    max_size = int(cfg.get('MAX_PAGE_SIZE', 50))
    page_size = max(1, min(page_size, max_size))
    return jsonify(get_page(page, page_size))


@posts.route('/<int:post_id>', methods=['GET'])
def get_post(post_id):
    post = db.get_or_404(Post, post_id)
    return jsonify(post.to_dict())


def _vote(post_id, decision):
    data = request.get_json(silent=True) or {}
    voter_id = data.get('voter_id') or request.headers.get('X-Voter-Id')
    if not voter_id:
        return jsonify({'error': 'voter_id is required'}), 400
    post = cast_vote(post_id, decision, str(voter_id))
    if post is None:
        return jsonify({'error': 'Post not found'}), 404
    current_app.logger.info(f"[vote] post={post_id} voter={voter_id} decision={decision}")
    return jsonify(post.to_dict())


@posts.route('/<int:post_id>/smash', methods=['PATCH'])
def smash(post_id):
    return _vote(post_id, 1)


@posts.route('/<int:post_id>/pass', methods=['PATCH'])
def pass_post(post_id):
    return _vote(post_id, -1)
