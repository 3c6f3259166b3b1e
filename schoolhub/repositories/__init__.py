"""External collaborators: student store, notification sink and calendar dataset."""
