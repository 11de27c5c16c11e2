"""StudyVault PDF thumbnail service."""
