"""Domain model: instances, profiles and lifecycle errors."""
