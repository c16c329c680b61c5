"""Republish GitHub release assets to S3 and write manifest descriptors."""
