"""Core request handling: path resolution, listings, file serving, derived assets."""
