"""Infrastructure - external service clients, retry policy, audit log storage."""
