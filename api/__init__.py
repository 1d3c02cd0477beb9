"""HTTP API over the grant explorer core."""
