"""Shop Service business logic package."""
