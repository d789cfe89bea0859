"""HTTP routes. Application routes are versioned under v1/."""
