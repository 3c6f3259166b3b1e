"""Calendar conversion and month navigation."""
