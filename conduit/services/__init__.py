# Services package.
#
# Each module exposes a focused set of async functions that compose the
# repositories for a single domain aggregate and assemble the response
# envelopes returned by the routers:
#
#   article_service  articles, listings, feed and favourites
#   comment_service  comments on an article
#   profile_service  public profiles and following
#   tag_service      tag list, cached in Redis
#   user_service     registration, login and account updates
#
# All service functions accept the root Session as their first argument.
# Multi-statement writes open their own transaction through
# ``Session.do_transactionally``; reads go through the pool.
