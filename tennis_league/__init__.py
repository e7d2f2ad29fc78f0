"""Tennis league ranking API."""
