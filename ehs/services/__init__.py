"""Domain services for the EHS Platform."""
