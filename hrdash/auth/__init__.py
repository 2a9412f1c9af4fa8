"""Auth module — Google sign-in, JWT sessions and durable roles."""
