"""HTTP endpoints of the security extension."""
