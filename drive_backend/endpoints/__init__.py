"""HTTP endpoints of the Drive stream backend."""
