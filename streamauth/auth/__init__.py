"""Device-code authorization, token validation/refresh and authenticated calls."""
