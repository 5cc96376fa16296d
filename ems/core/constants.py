"""Core constants: cache key separator, table names and shared literal values.

Single source of truth for cache key structure and backend table names (DRY).
"""

# Delimiter for rendered composite cache keys
CACHE_KEY_SEP = ":"

# Placeholder owner for store-wide keys (e.g. all events)
CACHE_OWNER_ALL = "all"

# Backend tables (PostgREST)
TABLE_USERS = "users"
TABLE_EVENTS = "events"
TABLE_EVENT_DETAILS = "event_details"
TABLE_PARTICIPANTS = "participants"
