"""scatter utilities."""
