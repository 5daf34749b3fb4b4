"""Request guards: store authentication and rate limiting."""
