"""Drive stream backend: range-aware media proxy and folder listing for the player widget."""
