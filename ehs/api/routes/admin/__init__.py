"""Platform operator routes."""
