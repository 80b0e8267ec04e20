"""
Shared module to hold constant values for the library
"""

# Delimiter used for nested dict keys
NESTED_DICT_DELIM = "."

# Maximum number of wrapper hops followed before a chain is considered cyclic
MAX_UNWRAP_DEPTH = 100

# Key used in the informer cache and per-object locks
OBJECT_KEY_DELIM = "/"

# Operation names used for metric labels and log fields
OP_GET_CURRENT_STATE = "GetCurrentState"
OP_GET_DESIRED_STATE = "GetDesiredState"
OP_NEW_UPDATE_PATCH = "NewUpdatePatch"
OP_NEW_DELETE_PATCH = "NewDeletePatch"
OP_APPLY_CREATE_CHANGE = "ApplyCreateChange"
OP_APPLY_DELETE_CHANGE = "ApplyDeleteChange"
OP_APPLY_UPDATE_CHANGE = "ApplyUpdateChange"
OP_ENSURE_CREATED = "EnsureCreated"
OP_ENSURE_DELETED = "EnsureDeleted"

# Watch event kinds used for informer metric labels
WATCH_KIND_ADDED = "added"
WATCH_KIND_MODIFIED = "modified"
WATCH_KIND_DELETED = "deleted"
WATCH_KIND_INVALID = "invalid"

# Seconds between shutdown checks while waiting for an informer's first list
INFORMER_FILL_POLL_INTERVAL = 0.05
