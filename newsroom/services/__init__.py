# Services package.
#
# Each module exposes a focused set of async functions that encapsulate
# business logic and database access for a single domain aggregate:
#
#   auth_service       register / login / refresh rotation / logout
#   user_service       admin account management for User
#   article_service    CRUD, visibility, soft delete for Article
#   category_service   two-level category tree
#   comment_service    comments on Article
#   bookmark_service   per-user saved articles
#   news_service       provider ingestion + cached reads for LatestNews
#   slugs              slug generation and slug-or-id lookup helpers
#
# All service functions accept an AsyncSession as their first argument
# so that the router layer controls the transaction boundary via the
# ``get_db`` dependency.
