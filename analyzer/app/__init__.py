"""FastAPI application for the media analyzer."""
