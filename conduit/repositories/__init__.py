# Repositories package.
#
# Each module holds the SQL for one table family and runs it through the
# generic helpers in ``conduit.db.queries``:
#
#   users     accounts, lookups by id / email / username
#   profiles  public profiles and follow relationships
#   tags      tag upsert and article <-> tag links
#   articles  article CRUD, listing/feed filters, favourites
#   comments  article comments
#
# Every function takes the shared ``Session`` first and never opens or
# commits a transaction itself;
# statements join whatever transaction is bound to the current context.
