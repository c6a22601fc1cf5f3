"""Background jobs and the HTTP backends they call."""
