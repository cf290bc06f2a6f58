"""Runtime - execution helpers shared by the cloud pipeline (retry, backoff)."""
