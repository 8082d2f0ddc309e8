"""Infrastructure - database, logging, security, rate limiting and the Anthropic client."""
