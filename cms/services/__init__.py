# Services package.
#
# Each module exposes a focused set of async functions holding the
# business rules for one responsibility:
#
#   credential_store: access token lookup, issuance and revocation
#   session_service:  login validation for the cookie session
#   article_service:  draft/published lifecycle + cache for Article
#   comment_service:  append-only comments on Article
#   user_service:     CRUD for User
#
# All service functions accept an AsyncSession as their first argument
# so that the router layer controls the transaction boundary via the
# ``get_db`` dependency.  Failures are raised as ``cms.errors`` types.
