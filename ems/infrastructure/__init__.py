"""Infrastructure layer: cache, Supabase adapters and external services."""
