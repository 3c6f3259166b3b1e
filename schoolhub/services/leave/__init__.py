"""Leave record codec and lifecycle."""
