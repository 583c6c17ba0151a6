"""Media analysis service: conversations, images and documents."""
