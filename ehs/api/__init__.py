"""HTTP API for the EHS Platform."""
