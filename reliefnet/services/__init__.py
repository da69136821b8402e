"""Service layer: geofencing, translation, text generation and external collaborators."""
