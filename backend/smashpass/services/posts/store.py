import random

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from smashpass import db
from smashpass.models import Post, Vote


def get_page(page: int, page_size: int) -> dict:
    """Return one 1-based page of posts in id order plus the overall total."""
    if page < 1:
        raise ValueError('page must be >= 1')
    if page_size < 1:
        raise ValueError('page_size must be >= 1')
    total = Post.query.count()
    posts = (
        Post.query.order_by(Post.id)
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return {
        'posts': [p.to_dict() for p in posts],
        'page': page,
        'total': total,
    }


def cast_vote(post_id, decision, voter_id):
    """Record `voter_id`'s decision (+1 smash, -1 pass) on a post.

    Repeating a vote is a no-op; voting the other way moves the existing
    vote. Returns the updated post, or None if it does not exist.
    """
    decision = int(decision)
    if decision not in (-1, 1):
        raise ValueError('decision must be +1 (smash) or -1 (pass)')
    if not voter_id:
        raise ValueError('voter_id is required')

    post = db.session.get(Post, post_id)
    if post is None:
        return None

    existing = Vote.query.filter_by(post_id=post.id, voter_id=voter_id).first()
    if existing is not None:
        if existing.decision == decision:
            return post
        # Only the writer that actually flips the row moves the counters.
        flipped = db.session.execute(
            update(Vote)
            .where(Vote.id == existing.id, Vote.decision == existing.decision)
            .values(decision=decision)
            .execution_options(synchronize_session=False)
        ).rowcount
        if flipped:
            _bump(post.id, existing.decision, -1)
            _bump(post.id, decision, +1)
        db.session.commit()
        return post

    db.session.add(Vote(post_id=post.id, voter_id=voter_id, decision=decision))
    try:
        db.session.flush()
    except IntegrityError:
        # Same voter raced us to the insert; their vote already counts.
        db.session.rollback()
        return cast_vote(post_id, decision, voter_id)
    _bump(post.id, decision, +1, total=1)
    db.session.commit()
    return post


def _bump(post_id, decision, delta, total=0):
    """Increment counters in SQL so concurrent voters never overwrite each other."""
    column = Post.smashes if decision == 1 else Post.passes
    values = {column.key: column + delta}
    if total:
        values['total_votes'] = Post.total_votes + total
    db.session.execute(
        update(Post)
        .where(Post.id == post_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )


_FIRST_NAMES = ['Ada', 'Bea', 'Cal', 'Dex', 'Eli', 'Fay', 'Gus', 'Hal', 'Ivy', 'Jo', 'Kit', 'Lou']
_BIOS = [
    'Coffee first, questions later.',
    'Will trade memes for snacks.',
    'Professional overthinker.',
    'Dog person, cat tolerant.',
    'Probably on a hike right now.',
]


def seed_posts(count=25):
    """Insert `count` sample profile cards."""
    posts = []
    for i in range(count):
        name = f"{random.choice(_FIRST_NAMES)} {i + 1}"
        posts.append(Post(
            name=name,
            image_url=f"https://picsum.photos/seed/smashpass-{i + 1}/400/600",
            bio=random.choice(_BIOS),
        ))
    db.session.add_all(posts)
    db.session.commit()
    return posts
