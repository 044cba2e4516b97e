"""Maven version ordering and range resolution."""
