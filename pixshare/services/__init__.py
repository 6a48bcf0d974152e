# Services package.
#
# Each module exposes async functions holding the business logic for one
# part of the posting feature:
#
#   post_service     - create / read (enriched) / edit / delete posts
#   comment_service  - comments embedded in a post
#   like_service     - likes embedded in a post
#   user_service     - create / read users
#
# All functions take an AsyncSession as their first argument so the
# router layer owns the transaction boundary via ``get_db``.  Failures
# are raised as the typed errors in ``pixshare.errors``; nothing is
# swallowed here.
