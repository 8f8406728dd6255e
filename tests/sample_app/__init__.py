"""Sample application used by the security extension tests."""
