"""Post store: paging and vote counting for the profile cards."""

from .store import cast_vote, get_page, seed_posts
