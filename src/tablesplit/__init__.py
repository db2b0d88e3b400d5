"""Restaurant order splitting with exact integer money allocation."""
